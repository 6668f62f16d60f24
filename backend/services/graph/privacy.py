"""Privacy gating for follow requests and the public-toggle bulk accept."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, cast

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import settings
from models import Account, EdgeKind, EdgeStatus
from models._columns import utcnow
from services.notifications import NotificationDispatcher, NotificationType

from . import projector, store
from .notify import notify_safely

logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def decide(account: Account, kind: EdgeKind | str) -> EdgeStatus:
    """Initial status for a request addressed to ``account``."""
    if store.kind_value(kind) == EdgeKind.FRIEND.value:
        return EdgeStatus.PENDING
    if account.is_private:
        return EdgeStatus.PENDING
    return EdgeStatus.ACCEPTED


@dataclass(slots=True)
class BulkAcceptResult:
    accepted: int = 0
    skipped: int = 0
    failed: list[str] = field(default_factory=list)
    exhausted: bool = True


async def on_privacy_changed(
    session: AsyncSession,
    *,
    account_id: str,
    now_private: bool,
    notifier: NotificationDispatcher | None = None,
    batch_size: int | None = None,
    max_items: int | None = None,
) -> BulkAcceptResult:
    """Accept every pending incoming follow once an account becomes public.

    The batch is bounded by ``max_items``; ``exhausted`` is False when items
    may remain, in which case calling again resumes where this run stopped.
    Each edge is committed on its own so a failure only skips that edge.
    """
    result = BulkAcceptResult()
    if now_private:
        return result

    batch_size = batch_size or settings.bulk_accept_batch_size
    max_items = max_items or settings.bulk_accept_max_items
    if batch_size <= 0 or max_items <= 0:
        raise ValueError("batch_size and max_items must be positive")

    started_at = perf_counter()
    processed = 0
    after_id: str | None = None
    while True:
        if processed >= max_items:
            result.exhausted = False
            break

        page = await store.list_pending_incoming(
            session,
            receiver_id=account_id,
            kind=EdgeKind.FOLLOW,
            after_id=after_id,
            limit=min(batch_size, max_items - processed),
        )
        if not page:
            break
        # Plain tuples: a per-item rollback expires the ORM instances.
        items = [(edge.id, edge.sender_id) for edge in page]
        after_id = items[-1][0]

        for edge_id, sender_id in items:
            processed += 1
            try:
                accepted = await _accept_one(session, edge_id=edge_id)
            except Exception as exc:
                await session.rollback()
                result.failed.append(edge_id)
                logger.warning(
                    "Failed to auto-accept follow request",
                    extra={"account_id": account_id, "edge_id": edge_id},
                    exc_info=exc,
                )
                continue

            if not accepted:
                result.skipped += 1
                continue
            result.accepted += 1
            await notify_safely(
                notifier,
                NotificationType.REQUEST_ACCEPTED,
                from_id=account_id,
                to_id=sender_id,
                context={"edge_id": edge_id, "kind": EdgeKind.FOLLOW.value},
            )

    elapsed_ms = int((perf_counter() - started_at) * 1000)
    logger.info(
        "Processed pending follow requests after privacy change",
        extra={
            "account_id": account_id,
            "elapsed_ms": elapsed_ms,
            "accepted": result.accepted,
            "skipped": result.skipped,
            "failed": len(result.failed),
        },
    )
    return result


async def _accept_one(session: AsyncSession, *, edge_id: str) -> bool:
    swapped = await store.transition_edge_status(
        session,
        edge_id=edge_id,
        from_status=EdgeStatus.PENDING,
        to_status=EdgeStatus.ACCEPTED,
    )
    edge = await store.get_edge(session, edge_id)
    if edge is None or edge.status != EdgeStatus.ACCEPTED.value:
        return False
    # Re-projecting an edge another worker already accepted is harmless.
    await projector.apply_accepted(session, edge)
    return swapped


async def set_account_privacy(
    session: AsyncSession,
    *,
    account_id: str,
    is_private: bool,
    notifier: NotificationDispatcher | None = None,
) -> BulkAcceptResult | None:
    """Update the privacy flag and run the bulk accept on private -> public."""
    account = await store.require_account(session, account_id)
    was_private = account.is_private

    await session.execute(
        update(Account)
        .where(_eq(Account.id, account_id))
        .values(is_private=is_private, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    await session.refresh(account)

    if was_private and not is_private:
        return await on_privacy_changed(
            session,
            account_id=account_id,
            now_private=False,
            notifier=notifier,
        )
    return None
