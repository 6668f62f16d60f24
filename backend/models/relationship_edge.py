"""Directed follow/friend relationship records."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Column, Index, String, text
from sqlmodel import Field, SQLModel

from ._columns import (
    account_fk_column,
    created_at_column,
    id_column,
    new_id,
    updated_at_column,
    utcnow,
)


class EdgeKind(str, Enum):
    FOLLOW = "follow"
    FRIEND = "friend"


class EdgeStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


ACTIVE_EDGE_PREDICATE = text("status <> 'rejected'")


class RelationshipEdge(SQLModel, table=True):
    """A sender -> receiver request or accepted relationship.

    Rejected rows are kept for audit, so uniqueness only covers the
    non-rejected edge of each (sender, receiver, kind).
    """

    __tablename__ = "relationship_edges"
    __table_args__ = (
        CheckConstraint("sender_id <> receiver_id", name="ck_relationship_edges_no_self_edge"),
        Index(
            "uq_relationship_edges_active",
            "sender_id",
            "receiver_id",
            "kind",
            unique=True,
            sqlite_where=ACTIVE_EDGE_PREDICATE,
            postgresql_where=ACTIVE_EDGE_PREDICATE,
        ),
        Index("ix_relationship_edges_receiver_status", "receiver_id", "status"),
        Index("ix_relationship_edges_sender_status", "sender_id", "status"),
    )

    id: str = Field(default_factory=new_id, sa_column=id_column())
    sender_id: str = Field(sa_column=account_fk_column())
    receiver_id: str = Field(sa_column=account_fk_column())
    kind: str = Field(sa_column=Column(String(16), nullable=False))
    status: str = Field(
        default=EdgeStatus.PENDING.value,
        sa_column=Column(String(16), nullable=False),
    )
    created_at: datetime = Field(default_factory=utcnow, sa_column=created_at_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=updated_at_column())
