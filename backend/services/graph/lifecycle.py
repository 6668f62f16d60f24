"""Follow and friend request lifecycle.

Transitions per edge::

    pending --accept--> accepted --unfollow/unfriend/block--> (deleted)
    pending --reject--> rejected
    pending --cancel--> (deleted)

Each transition is one conditional write; membership projection and the
notification follow it and never undo it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from models import EdgeKind, EdgeStatus, RelationshipEdge
from services.notifications import NotificationDispatcher, NotificationType

from . import blocks, privacy, projector, store
from .errors import (
    BlockedError,
    DuplicateError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from .notify import notify_safely

logger = logging.getLogger(__name__)

_ACTIVE_STATUSES = (EdgeStatus.PENDING, EdgeStatus.ACCEPTED)


@dataclass(slots=True)
class SubmitResult:
    edge: RelationshipEdge
    is_pending: bool


async def are_friends(
    session: AsyncSession,
    *,
    account_id: str,
    other_account_id: str,
) -> bool:
    return await store.has_accepted_follow(
        session, sender_id=account_id, receiver_id=other_account_id
    ) and await store.has_accepted_follow(
        session, sender_id=other_account_id, receiver_id=account_id
    )


async def _ensure_friend_request_allowed(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
) -> None:
    if await are_friends(session, account_id=sender_id, other_account_id=receiver_id):
        raise DuplicateError("Already friends", sender_id=sender_id, receiver_id=receiver_id)
    crossed = await store.find_active_edge(
        session,
        sender_id=receiver_id,
        receiver_id=sender_id,
        kind=EdgeKind.FRIEND,
    )
    if crossed is not None:
        raise DuplicateError(
            "A friend request is already pending between you",
            sender_id=sender_id,
            receiver_id=receiver_id,
        )


async def submit_request(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
    kind: EdgeKind | str,
    notifier: NotificationDispatcher | None = None,
) -> SubmitResult:
    kind_str = store.kind_value(kind)
    store.validate_pair(
        sender_id,
        receiver_id,
        self_message="Cannot send a request to yourself",
    )
    await store.require_account(session, sender_id)
    receiver = await store.require_account(session, receiver_id)

    if await blocks.is_blocked_pair(
        session,
        account_id=sender_id,
        other_account_id=receiver_id,
    ):
        raise BlockedError(
            "Cannot interact with this user",
            sender_id=sender_id,
            receiver_id=receiver_id,
        )
    if kind_str == EdgeKind.FRIEND.value:
        await _ensure_friend_request_allowed(
            session, sender_id=sender_id, receiver_id=receiver_id
        )

    initial_status = privacy.decide(receiver, kind_str)
    try:
        edge = await store.insert_edge(
            session,
            sender_id=sender_id,
            receiver_id=receiver_id,
            kind=kind_str,
            status=initial_status,
        )
    except DuplicateError as exc:
        existing = await store.find_active_edge(
            session,
            sender_id=sender_id,
            receiver_id=receiver_id,
            kind=kind_str,
        )
        if existing is not None and existing.status == EdgeStatus.ACCEPTED.value:
            raise DuplicateError(
                "Already following", sender_id=sender_id, receiver_id=receiver_id
            ) from exc
        raise DuplicateError(
            "Request already pending", sender_id=sender_id, receiver_id=receiver_id
        ) from exc

    edge_id = edge.id
    if await blocks.is_blocked_pair(
        session,
        account_id=sender_id,
        other_account_id=receiver_id,
    ):
        # Block landed between the guard and the insert.
        await store.delete_edge(session, edge_id)
        raise BlockedError(
            "Cannot interact with this user",
            sender_id=sender_id,
            receiver_id=receiver_id,
        )

    is_pending = edge.status == EdgeStatus.PENDING.value
    if not is_pending:
        await projector.apply_accepted(session, edge)

    logger.info(
        "Relationship request submitted",
        extra={
            "account_id": sender_id,
            "other_account_id": receiver_id,
            "edge_id": edge.id,
            "kind": kind_str,
        },
    )
    if not is_pending:
        notification_type = NotificationType.FOLLOW
    elif kind_str == EdgeKind.FRIEND.value:
        notification_type = NotificationType.FRIEND_REQUEST
    else:
        notification_type = NotificationType.FOLLOW_REQUEST
    await notify_safely(
        notifier,
        notification_type,
        from_id=sender_id,
        to_id=receiver_id,
        context={"edge_id": edge.id, "kind": kind_str},
    )
    return SubmitResult(edge=edge, is_pending=is_pending)


async def submit_follow(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
    notifier: NotificationDispatcher | None = None,
) -> SubmitResult:
    return await submit_request(
        session,
        sender_id=sender_id,
        receiver_id=receiver_id,
        kind=EdgeKind.FOLLOW,
        notifier=notifier,
    )


async def submit_friend(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
    notifier: NotificationDispatcher | None = None,
) -> SubmitResult:
    return await submit_request(
        session,
        sender_id=sender_id,
        receiver_id=receiver_id,
        kind=EdgeKind.FRIEND,
        notifier=notifier,
    )


async def _load_pending_for_receiver(
    session: AsyncSession,
    *,
    edge_id: str,
    acting_account_id: str,
) -> RelationshipEdge:
    store.validate_identifier(edge_id, field="edge_id")
    edge = await store.get_edge(session, edge_id)
    if edge is None:
        raise NotFoundError("Request not found", edge_id=edge_id)
    if edge.receiver_id != acting_account_id:
        raise ForbiddenError(
            "You are not authorized to respond to this request",
            edge_id=edge_id,
            account_id=acting_account_id,
        )
    if edge.status != EdgeStatus.PENDING.value:
        raise InvalidStateError(f"Request is already {edge.status}", edge_id=edge_id)
    return edge


async def _swap_status(
    session: AsyncSession,
    *,
    edge_id: str,
    to_status: EdgeStatus,
) -> RelationshipEdge:
    swapped = await store.transition_edge_status(
        session,
        edge_id=edge_id,
        from_status=EdgeStatus.PENDING,
        to_status=to_status,
    )
    edge = await store.get_edge(session, edge_id)
    if edge is None:
        raise NotFoundError("Request not found", edge_id=edge_id)
    if not swapped:
        raise InvalidStateError(f"Request is already {edge.status}", edge_id=edge_id)
    return edge


async def _materialize_friendship(session: AsyncSession, edge: RelationshipEdge) -> None:
    """Turn an accepted friend request into accepted follows both ways.

    The friend edge, and any pending friend request the other way, is removed
    once both follows are projected; friendship itself is always read from the
    mutual follows.
    """
    edge_id = edge.id
    first_id, second_id = edge.sender_id, edge.receiver_id
    for sender_id, receiver_id in ((first_id, second_id), (second_id, first_id)):
        follow = await store.ensure_accepted_follow(
            session,
            sender_id=sender_id,
            receiver_id=receiver_id,
        )
        await projector.apply_accepted(session, follow)
    await store.delete_edge(session, edge_id)
    await store.delete_edges(
        session,
        sender_id=second_id,
        receiver_id=first_id,
        kind=EdgeKind.FRIEND,
        statuses=(EdgeStatus.PENDING,),
    )


async def accept_request(
    session: AsyncSession,
    *,
    edge_id: str,
    acting_account_id: str,
    notifier: NotificationDispatcher | None = None,
) -> RelationshipEdge:
    await _load_pending_for_receiver(
        session,
        edge_id=edge_id,
        acting_account_id=acting_account_id,
    )
    edge = await _swap_status(session, edge_id=edge_id, to_status=EdgeStatus.ACCEPTED)
    sender_id, receiver_id, kind = edge.sender_id, edge.receiver_id, edge.kind

    if kind == EdgeKind.FRIEND.value:
        try:
            await _materialize_friendship(session, edge)
        except Exception:
            # Hand the request back so the receiver can accept it again.
            await session.rollback()
            await store.transition_edge_status(
                session,
                edge_id=edge_id,
                from_status=EdgeStatus.ACCEPTED,
                to_status=EdgeStatus.PENDING,
            )
            raise
    else:
        await projector.apply_accepted(session, edge)

    logger.info(
        "Relationship request accepted",
        extra={"account_id": receiver_id, "other_account_id": sender_id, "edge_id": edge_id},
    )
    await notify_safely(
        notifier,
        NotificationType.REQUEST_ACCEPTED,
        from_id=receiver_id,
        to_id=sender_id,
        context={"edge_id": edge_id, "kind": kind},
    )
    return edge


async def reject_request(
    session: AsyncSession,
    *,
    edge_id: str,
    acting_account_id: str,
    notifier: NotificationDispatcher | None = None,
) -> RelationshipEdge:
    """Mark a pending request rejected; the row stays for audit."""
    await _load_pending_for_receiver(
        session,
        edge_id=edge_id,
        acting_account_id=acting_account_id,
    )
    edge = await _swap_status(session, edge_id=edge_id, to_status=EdgeStatus.REJECTED)

    logger.info(
        "Relationship request rejected",
        extra={
            "account_id": edge.receiver_id,
            "other_account_id": edge.sender_id,
            "edge_id": edge_id,
        },
    )
    await notify_safely(
        notifier,
        NotificationType.REQUEST_REJECTED,
        from_id=edge.receiver_id,
        to_id=edge.sender_id,
        context={"edge_id": edge_id, "kind": edge.kind},
    )
    return edge


async def cancel_request(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
    kind: EdgeKind | str = EdgeKind.FOLLOW,
) -> bool:
    """Withdraw the sender's own pending request. Missing requests are a no-op."""
    store.validate_pair(sender_id, receiver_id, self_message="Cannot cancel a request to yourself")
    deleted = await store.delete_edges(
        session,
        sender_id=sender_id,
        receiver_id=receiver_id,
        kind=kind,
        statuses=(EdgeStatus.PENDING,),
    )
    return deleted > 0


async def unfollow(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
) -> bool:
    store.validate_pair(sender_id, receiver_id, self_message="Cannot unfollow yourself")
    deleted = await store.delete_edges(
        session,
        sender_id=sender_id,
        receiver_id=receiver_id,
        kind=EdgeKind.FOLLOW,
        statuses=(EdgeStatus.ACCEPTED,),
    )
    await projector.apply_removed(
        session,
        sender_id=sender_id,
        receiver_id=receiver_id,
        kind=EdgeKind.FOLLOW,
    )
    return deleted > 0


async def remove_follower(
    session: AsyncSession,
    *,
    account_id: str,
    follower_id: str,
) -> bool:
    """Drop ``follower_id`` from the followers of ``account_id``."""
    store.validate_pair(account_id, follower_id, self_message="Cannot remove yourself as a follower")
    return await unfollow(session, sender_id=follower_id, receiver_id=account_id)


async def unfriend(
    session: AsyncSession,
    *,
    account_id: str,
    other_account_id: str,
) -> bool:
    """Sever the pair in both directions, including outstanding requests."""
    store.validate_pair(account_id, other_account_id, self_message="Cannot unfriend yourself")
    deleted = 0
    for sender_id, receiver_id in (
        (account_id, other_account_id),
        (other_account_id, account_id),
    ):
        deleted += await store.delete_edges(
            session,
            sender_id=sender_id,
            receiver_id=receiver_id,
            statuses=_ACTIVE_STATUSES,
        )
        await projector.apply_removed(
            session,
            sender_id=sender_id,
            receiver_id=receiver_id,
            kind=EdgeKind.FOLLOW,
        )
    if deleted:
        logger.info(
            "Accounts unfriended",
            extra={"account_id": account_id, "other_account_id": other_account_id},
        )
    return deleted > 0
