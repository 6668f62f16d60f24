"""Account block relationship model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Index, UniqueConstraint
from sqlmodel import Field, SQLModel

from ._columns import account_fk_column, created_at_column, id_column, new_id, utcnow


class BlockEdge(SQLModel, table=True):
    """Represents a blocker -> blocked relationship."""

    __tablename__ = "block_edges"
    __table_args__ = (
        CheckConstraint("blocker_id <> blocked_id", name="ck_block_edges_no_self_block"),
        UniqueConstraint("blocker_id", "blocked_id", name="uq_block_edges_pair"),
        Index("ix_block_edges_blocked_blocker", "blocked_id", "blocker_id"),
    )

    id: str = Field(default_factory=new_id, sa_column=id_column())
    blocker_id: str = Field(sa_column=account_fk_column())
    blocked_id: str = Field(sa_column=account_fk_column())
    created_at: datetime = Field(default_factory=utcnow, sa_column=created_at_column())
