"""Projection of accepted follow edges into account membership sets.

Membership rows are a cache. Projection runs right after the edge write but
in its own commit, so a crash in between leaves drift that ``reconcile``
repairs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.upsert import insert_if_absent
from models import (
    AccountMembership,
    EdgeKind,
    EdgeStatus,
    MembershipRelation,
    RelationshipEdge,
)
from models._columns import utcnow

from . import store

logger = logging.getLogger(__name__)

FOLLOWER = MembershipRelation.FOLLOWER.value
FOLLOWING = MembershipRelation.FOLLOWING.value
FRIEND = MembershipRelation.FRIEND.value


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _member_row(account_id: str, relation: str, member_id: str) -> dict[str, Any]:
    return {
        "account_id": account_id,
        "relation": relation,
        "member_id": member_id,
        "created_at": utcnow(),
    }


def _membership_match(account_id: str, relation: str, member_id: str) -> ColumnElement[bool]:
    return cast(
        ColumnElement[bool],
        and_(
            _eq(AccountMembership.account_id, account_id),
            _eq(AccountMembership.relation, relation),
            _eq(AccountMembership.member_id, member_id),
        ),
    )


def _friend_pair_match(first_id: str, second_id: str) -> ColumnElement[bool]:
    return cast(
        ColumnElement[bool],
        or_(
            _membership_match(first_id, FRIEND, second_id),
            _membership_match(second_id, FRIEND, first_id),
        ),
    )


async def apply_accepted(session: AsyncSession, edge: RelationshipEdge) -> None:
    """Add an accepted follow edge to both accounts' sets. Idempotent."""
    if edge.kind != EdgeKind.FOLLOW.value:
        return
    if edge.status != EdgeStatus.ACCEPTED.value:
        raise ValueError("Only accepted edges can be projected")

    sender_id = edge.sender_id
    receiver_id = edge.receiver_id
    rows = [
        _member_row(sender_id, FOLLOWING, receiver_id),
        _member_row(receiver_id, FOLLOWER, sender_id),
    ]
    if await store.has_accepted_follow(
        session,
        sender_id=receiver_id,
        receiver_id=sender_id,
    ):
        rows.append(_member_row(sender_id, FRIEND, receiver_id))
        rows.append(_member_row(receiver_id, FRIEND, sender_id))

    await insert_if_absent(session, AccountMembership, rows)
    await session.commit()


async def apply_removed(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
    kind: EdgeKind | str = EdgeKind.FOLLOW,
) -> None:
    """Drop the membership entries of a removed sender -> receiver edge."""
    if store.kind_value(kind) == EdgeKind.FOLLOW.value:
        await session.execute(
            delete(AccountMembership)
            .where(
                or_(
                    _membership_match(sender_id, FOLLOWING, receiver_id),
                    _membership_match(receiver_id, FOLLOWER, sender_id),
                    # Losing one direction always ends the mutual follow.
                    _friend_pair_match(sender_id, receiver_id),
                )
            )
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        return

    forward = await store.has_accepted_follow(
        session, sender_id=sender_id, receiver_id=receiver_id
    )
    backward = await store.has_accepted_follow(
        session, sender_id=receiver_id, receiver_id=sender_id
    )
    if forward and backward:
        return
    await session.execute(
        delete(AccountMembership)
        .where(_friend_pair_match(sender_id, receiver_id))
        .execution_options(synchronize_session=False)
    )
    await session.commit()


@dataclass(slots=True)
class ReconcileResult:
    account_id: str
    added: int
    removed: int
    purged_edges: int = 0

    @property
    def changed(self) -> bool:
        return self.added > 0 or self.removed > 0 or self.purged_edges > 0


async def _accepted_neighbours(
    session: AsyncSession,
    *,
    account_id: str,
    outgoing: bool,
) -> set[str]:
    if outgoing:
        own_column, other_column = RelationshipEdge.sender_id, RelationshipEdge.receiver_id
    else:
        own_column, other_column = RelationshipEdge.receiver_id, RelationshipEdge.sender_id
    other = cast(ColumnElement[str], other_column)
    result = await session.execute(
        select(other).where(
            _eq(own_column, account_id),
            _eq(RelationshipEdge.kind, EdgeKind.FOLLOW.value),
            _eq(RelationshipEdge.status, EdgeStatus.ACCEPTED.value),
            store.build_not_blocked_either_direction_filter(
                viewer_id=account_id,
                candidate_user_id_column=other,
            ),
        )
    )
    return {row[0] for row in result.all()}


async def _purge_blocked_edges(session: AsyncSession, *, account_id: str) -> int:
    stale = await store.list_edges_with_blocked_counterpart(session, account_id=account_id)
    purged = 0
    for edge_id, sender_id, receiver_id, kind, status in [
        (edge.id, edge.sender_id, edge.receiver_id, edge.kind, edge.status) for edge in stale
    ]:
        if await store.delete_edge(session, edge_id):
            purged += 1
        if kind == EdgeKind.FOLLOW.value and status == EdgeStatus.ACCEPTED.value:
            await apply_removed(
                session,
                sender_id=sender_id,
                receiver_id=receiver_id,
                kind=kind,
            )
    return purged


async def get_membership(
    session: AsyncSession,
    *,
    account_id: str,
    relation: MembershipRelation | str,
) -> set[str]:
    member_column = cast(ColumnElement[str], AccountMembership.member_id)
    result = await session.execute(
        select(member_column).where(
            _eq(AccountMembership.account_id, account_id),
            _eq(AccountMembership.relation, MembershipRelation(relation).value),
        )
    )
    return {row[0] for row in result.all()}


async def reconcile(session: AsyncSession, *, account_id: str) -> ReconcileResult:
    """Rebuild an account's three membership sets from accepted follow edges.

    Only the diff is written, so running it again right away changes nothing.
    Edges left between blocked pairs by an interrupted or racing block are
    deleted first, so they cannot come back after an unblock.
    """
    purged = await _purge_blocked_edges(session, account_id=account_id)
    following = await _accepted_neighbours(session, account_id=account_id, outgoing=True)
    followers = await _accepted_neighbours(session, account_id=account_id, outgoing=False)
    desired = (
        {(FOLLOWING, member_id) for member_id in following}
        | {(FOLLOWER, member_id) for member_id in followers}
        | {(FRIEND, member_id) for member_id in following & followers}
    )

    current_result = await session.execute(
        select(
            cast(ColumnElement[str], AccountMembership.relation),
            cast(ColumnElement[str], AccountMembership.member_id),
        ).where(_eq(AccountMembership.account_id, account_id))
    )
    current = {(relation, member_id) for relation, member_id in current_result.all()}

    to_remove = current - desired
    to_add = desired - current
    if to_remove:
        await session.execute(
            delete(AccountMembership)
            .where(
                or_(
                    *(
                        _membership_match(account_id, relation, member_id)
                        for relation, member_id in sorted(to_remove)
                    )
                )
            )
            .execution_options(synchronize_session=False)
        )
    if to_add:
        await insert_if_absent(
            session,
            AccountMembership,
            [
                _member_row(account_id, relation, member_id)
                for relation, member_id in sorted(to_add)
            ],
        )
    await session.commit()

    if to_add or to_remove or purged:
        logger.info(
            "Reconciled account memberships",
            extra={
                "account_id": account_id,
                "added": len(to_add),
                "removed": len(to_remove),
                "purged_edges": purged,
            },
        )
    return ReconcileResult(
        account_id=account_id,
        added=len(to_add),
        removed=len(to_remove),
        purged_edges=purged,
    )
