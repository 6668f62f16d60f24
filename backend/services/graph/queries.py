"""Read side of the social graph: relationship status and member lists."""

from __future__ import annotations

from enum import Enum
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import (
    Account,
    AccountMembership,
    EdgeKind,
    EdgeStatus,
    MembershipRelation,
    RelationshipEdge,
)

from . import blocks, store


class RelationshipStatus(str, Enum):
    NONE = "none"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    FOLLOWING = "following"
    FRIENDS = "friends"
    BLOCKED = "blocked"


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


async def get_status(
    session: AsyncSession,
    *,
    account_id: str,
    other_account_id: str,
) -> RelationshipStatus:
    """Status of ``account_id`` towards ``other_account_id``, read from edges."""
    store.validate_pair(
        account_id,
        other_account_id,
        self_message="Cannot query a relationship with yourself",
    )
    if await blocks.is_blocked_pair(
        session,
        account_id=account_id,
        other_account_id=other_account_id,
    ):
        return RelationshipStatus.BLOCKED

    edges = await store.list_edges_between(
        session,
        account_id=account_id,
        other_account_id=other_account_id,
    )
    follows_other = follows_back = pending_sent = pending_received = False
    for edge in edges:
        outgoing = edge.sender_id == account_id
        if edge.status == EdgeStatus.ACCEPTED.value and edge.kind == EdgeKind.FOLLOW.value:
            if outgoing:
                follows_other = True
            else:
                follows_back = True
        elif edge.status == EdgeStatus.PENDING.value:
            if outgoing:
                pending_sent = True
            else:
                pending_received = True

    if follows_other and follows_back:
        return RelationshipStatus.FRIENDS
    if follows_other:
        return RelationshipStatus.FOLLOWING
    if pending_sent:
        return RelationshipStatus.PENDING_SENT
    if pending_received:
        return RelationshipStatus.PENDING_RECEIVED
    return RelationshipStatus.NONE


async def _list_members(
    session: AsyncSession,
    *,
    account_id: str,
    relation: MembershipRelation,
    limit: int | None,
    offset: int,
) -> list[Account]:
    store.validate_identifier(account_id)
    await store.require_account(session, account_id)
    stmt = (
        select(Account)
        .join(AccountMembership, _eq(AccountMembership.member_id, Account.id))
        .where(
            _eq(AccountMembership.account_id, account_id),
            _eq(AccountMembership.relation, relation.value),
        )
        .order_by(Account.username, Account.id)
    )
    if offset > 0:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_followers(
    session: AsyncSession,
    *,
    account_id: str,
    limit: int | None = None,
    offset: int = 0,
) -> list[Account]:
    return await _list_members(
        session,
        account_id=account_id,
        relation=MembershipRelation.FOLLOWER,
        limit=limit,
        offset=offset,
    )


async def list_following(
    session: AsyncSession,
    *,
    account_id: str,
    limit: int | None = None,
    offset: int = 0,
) -> list[Account]:
    return await _list_members(
        session,
        account_id=account_id,
        relation=MembershipRelation.FOLLOWING,
        limit=limit,
        offset=offset,
    )


async def list_friends(
    session: AsyncSession,
    *,
    account_id: str,
    limit: int | None = None,
    offset: int = 0,
) -> list[Account]:
    return await _list_members(
        session,
        account_id=account_id,
        relation=MembershipRelation.FRIEND,
        limit=limit,
        offset=offset,
    )


async def _list_pending(
    session: AsyncSession,
    *,
    account_column: Any,
    counterpart_column: Any,
    account_id: str,
    kind: EdgeKind | str | None,
    limit: int | None,
    offset: int,
) -> list[RelationshipEdge]:
    store.validate_identifier(account_id)
    stmt = (
        select(RelationshipEdge)
        .where(
            _eq(account_column, account_id),
            _eq(RelationshipEdge.status, EdgeStatus.PENDING.value),
            store.build_not_blocked_either_direction_filter(
                viewer_id=account_id,
                candidate_user_id_column=cast(ColumnElement[str], counterpart_column),
            ),
        )
        .order_by(_desc(RelationshipEdge.created_at), _desc(RelationshipEdge.id))
    )
    if kind is not None:
        stmt = stmt.where(_eq(RelationshipEdge.kind, store.kind_value(kind)))
    if offset > 0:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_incoming_requests(
    session: AsyncSession,
    *,
    account_id: str,
    kind: EdgeKind | str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> list[RelationshipEdge]:
    """Pending requests awaiting a decision from ``account_id``, newest first."""
    return await _list_pending(
        session,
        account_column=RelationshipEdge.receiver_id,
        counterpart_column=RelationshipEdge.sender_id,
        account_id=account_id,
        kind=kind,
        limit=limit,
        offset=offset,
    )


async def list_outgoing_requests(
    session: AsyncSession,
    *,
    account_id: str,
    kind: EdgeKind | str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> list[RelationshipEdge]:
    return await _list_pending(
        session,
        account_column=RelationshipEdge.sender_id,
        counterpart_column=RelationshipEdge.receiver_id,
        account_id=account_id,
        kind=kind,
        limit=limit,
        offset=offset,
    )


async def count_incoming_requests(
    session: AsyncSession,
    *,
    account_id: str,
    kind: EdgeKind | str | None = None,
) -> int:
    store.validate_identifier(account_id)
    return await store.count_pending_incoming(session, receiver_id=account_id, kind=kind)
