"""Helpers and business logic for account block relationships."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import Account, BlockEdge, EdgeKind, EdgeStatus

from . import projector, store

logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


@dataclass(slots=True)
class BlockState:
    is_blocked: bool
    is_blocked_by: bool

    @property
    def any(self) -> bool:
        return self.is_blocked or self.is_blocked_by


async def get_block_state(
    session: AsyncSession,
    *,
    viewer_id: str,
    target_id: str,
) -> BlockState:
    if viewer_id == target_id:
        return BlockState(is_blocked=False, is_blocked_by=False)

    rows = await store.list_blocks_between(
        session,
        account_id=viewer_id,
        other_account_id=target_id,
    )
    is_blocked = any(
        row.blocker_id == viewer_id and row.blocked_id == target_id for row in rows
    )
    is_blocked_by = any(
        row.blocker_id == target_id and row.blocked_id == viewer_id for row in rows
    )
    return BlockState(is_blocked=is_blocked, is_blocked_by=is_blocked_by)


async def is_blocked_pair(
    session: AsyncSession,
    *,
    account_id: str,
    other_account_id: str,
) -> bool:
    """Guard consulted before any edge is created between the two accounts."""
    state = await get_block_state(
        session,
        viewer_id=account_id,
        target_id=other_account_id,
    )
    return state.any


async def block_account(
    session: AsyncSession,
    *,
    blocker_id: str,
    blocked_id: str,
) -> BlockEdge:
    """Create the block, then tear down every edge between the pair.

    Cleanup runs edge by edge after the block is committed. If it stops
    halfway the block still holds and ``projector.reconcile`` deletes the
    leftover edges and repairs the membership sets.
    """
    store.validate_pair(blocker_id, blocked_id, self_message="Cannot block yourself")
    await store.require_account(session, blocked_id)

    block = await store.insert_block(
        session,
        blocker_id=blocker_id,
        blocked_id=blocked_id,
    )
    logger.info(
        "Account blocked",
        extra={"account_id": blocker_id, "other_account_id": blocked_id},
    )

    edges = await store.list_edges_between(
        session,
        account_id=blocker_id,
        other_account_id=blocked_id,
    )
    for edge_id, sender_id, receiver_id, kind, status in [
        (edge.id, edge.sender_id, edge.receiver_id, edge.kind, edge.status) for edge in edges
    ]:
        if kind == EdgeKind.FOLLOW.value and status == EdgeStatus.ACCEPTED.value:
            await projector.apply_removed(
                session,
                sender_id=sender_id,
                receiver_id=receiver_id,
                kind=kind,
            )
        await store.delete_edge(session, edge_id)
    return block


async def unblock_account(
    session: AsyncSession,
    *,
    blocker_id: str,
    blocked_id: str,
) -> bool:
    """Remove the block only; earlier relationships are not restored."""
    store.validate_pair(blocker_id, blocked_id, self_message="Cannot unblock yourself")
    removed = await store.delete_block(
        session,
        blocker_id=blocker_id,
        blocked_id=blocked_id,
    )
    if removed:
        logger.info(
            "Account unblocked",
            extra={"account_id": blocker_id, "other_account_id": blocked_id},
        )
    return removed


async def list_blocked_accounts(
    session: AsyncSession,
    *,
    blocker_id: str,
    limit: int | None = None,
    offset: int = 0,
) -> list[Account]:
    stmt = (
        select(Account)
        .join(BlockEdge, _eq(BlockEdge.blocked_id, Account.id))
        .where(_eq(BlockEdge.blocker_id, blocker_id))
        .order_by(Account.username, Account.id)
    )
    if offset > 0:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())
