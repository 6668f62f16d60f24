"""SQLModel models package."""

from .account import Account
from .account_membership import AccountMembership, MembershipRelation
from .block_edge import BlockEdge
from .relationship_edge import EdgeKind, EdgeStatus, RelationshipEdge

__all__ = [
    "Account",
    "AccountMembership",
    "BlockEdge",
    "EdgeKind",
    "EdgeStatus",
    "MembershipRelation",
    "RelationshipEdge",
]
