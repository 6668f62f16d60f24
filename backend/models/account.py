"""Account record as seen by the relationship engine."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, String, text
from sqlmodel import Field, SQLModel

from ._columns import created_at_column, id_column, new_id, updated_at_column, utcnow


class Account(SQLModel, table=True):
    """Account owned by the directory service.

    The engine only reads ``id`` and ``is_private``; membership sets live in
    ``account_memberships``.
    """

    __tablename__ = "accounts"

    id: str = Field(default_factory=new_id, sa_column=id_column())
    username: str = Field(
        sa_column=Column(String(30), unique=True, nullable=False, index=True)
    )
    is_private: bool = Field(
        default=False,
        sa_column=Column(
            Boolean,
            nullable=False,
            server_default=text("false"),
        ),
    )
    created_at: datetime = Field(default_factory=utcnow, sa_column=created_at_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=updated_at_column())
