"""Denormalized follower/following/friend sets."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, Index, String
from sqlmodel import Field, SQLModel

from ._columns import account_fk_column, created_at_column, utcnow


class MembershipRelation(str, Enum):
    FOLLOWER = "follower"
    FOLLOWING = "following"
    FRIEND = "friend"


class AccountMembership(SQLModel, table=True):
    """One member of one of an account's membership sets.

    This table is a cache projected from accepted follow edges.
    """

    __tablename__ = "account_memberships"
    __table_args__ = (
        Index("ix_account_memberships_member", "member_id", "relation"),
    )

    account_id: str = Field(sa_column=account_fk_column(primary_key=True))
    relation: str = Field(sa_column=Column(String(16), primary_key=True))
    member_id: str = Field(sa_column=account_fk_column(primary_key=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=created_at_column())
