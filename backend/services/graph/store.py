"""Persistence primitives for relationship and block edges.

Every state change here is a single conditional write followed by a commit:
inserts rely on the unique indexes, status transitions are
``UPDATE ... WHERE status = :expected`` and removals are conditional
``DELETE`` statements. Callers never check existence before writing.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, cast
from uuid import UUID

from sqlalchemy import and_, delete, exists, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.errors import affected_rows, is_check_violation, is_unique_violation
from models import Account, BlockEdge, EdgeKind, EdgeStatus, RelationshipEdge
from models._columns import utcnow

from .errors import DuplicateError, NotFoundError, ValidationError


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _in(column: Any, values: Iterable[Any]) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column.in_(list(values)))


def _gt(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column > value)


def kind_value(kind: EdgeKind | str) -> str:
    try:
        return EdgeKind(kind).value
    except ValueError as exc:
        raise ValidationError(f"Unknown relationship kind: {kind}") from exc


def _is_canonical_uuid(raw_value: str) -> bool:
    try:
        parsed = UUID(raw_value)
    except (TypeError, ValueError, AttributeError):
        return False
    return str(parsed) == raw_value


def validate_identifier(raw_value: str, *, field: str = "account_id") -> str:
    if not isinstance(raw_value, str) or not _is_canonical_uuid(raw_value):
        raise ValidationError(f"{field} is not a valid identifier", field=field)
    return raw_value


def validate_pair(first_id: str, second_id: str, *, self_message: str) -> None:
    validate_identifier(first_id)
    validate_identifier(second_id, field="other_account_id")
    if first_id == second_id:
        raise ValidationError(self_message, account_id=first_id)


def pair_filter(
    first_column: Any,
    second_column: Any,
    first_id: str,
    second_id: str,
) -> ColumnElement[bool]:
    """Match rows linking the two accounts in either direction."""
    return cast(
        ColumnElement[bool],
        or_(
            and_(_eq(first_column, first_id), _eq(second_column, second_id)),
            and_(_eq(first_column, second_id), _eq(second_column, first_id)),
        ),
    )


def build_blocked_either_direction_filter(
    *,
    viewer_id: str,
    candidate_user_id_column: ColumnElement[str],
) -> ColumnElement[bool]:
    """Return SQL predicate matching a viewer/candidate pair blocked either way."""
    block_exists = exists(
        select(1).where(
            pair_filter(
                BlockEdge.blocker_id,
                BlockEdge.blocked_id,
                viewer_id,
                cast(Any, candidate_user_id_column),
            )
        )
    )
    return cast(ColumnElement[bool], block_exists)


def build_not_blocked_either_direction_filter(
    *,
    viewer_id: str,
    candidate_user_id_column: ColumnElement[str],
) -> ColumnElement[bool]:
    """Return SQL predicate ensuring viewer/candidate pair has no block either way."""
    blocked = build_blocked_either_direction_filter(
        viewer_id=viewer_id,
        candidate_user_id_column=candidate_user_id_column,
    )
    return cast(ColumnElement[bool], ~blocked)


# Accounts


async def get_account(session: AsyncSession, account_id: str) -> Account | None:
    return await session.get(Account, account_id)


async def require_account(session: AsyncSession, account_id: str) -> Account:
    account = await get_account(session, account_id)
    if account is None:
        raise NotFoundError("User not found", account_id=account_id)
    return account


# Relationship edges


async def get_edge(session: AsyncSession, edge_id: str) -> RelationshipEdge | None:
    return await session.get(RelationshipEdge, edge_id, populate_existing=True)


async def find_active_edge(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
    kind: EdgeKind | str,
) -> RelationshipEdge | None:
    result = await session.execute(
        select(RelationshipEdge)
        .where(
            _eq(RelationshipEdge.sender_id, sender_id),
            _eq(RelationshipEdge.receiver_id, receiver_id),
            _eq(RelationshipEdge.kind, kind_value(kind)),
            _in(
                RelationshipEdge.status,
                (EdgeStatus.PENDING.value, EdgeStatus.ACCEPTED.value),
            ),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def has_accepted_follow(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
) -> bool:
    result = await session.execute(
        select(
            exists().where(
                _eq(RelationshipEdge.sender_id, sender_id),
                _eq(RelationshipEdge.receiver_id, receiver_id),
                _eq(RelationshipEdge.kind, EdgeKind.FOLLOW.value),
                _eq(RelationshipEdge.status, EdgeStatus.ACCEPTED.value),
            )
        )
    )
    return bool(result.scalar())


async def insert_edge(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
    kind: EdgeKind | str,
    status: EdgeStatus | str,
) -> RelationshipEdge:
    """Insert a new edge; the active-edge unique index rejects duplicates."""
    kind_str = kind_value(kind)
    edge = RelationshipEdge(
        sender_id=sender_id,
        receiver_id=receiver_id,
        kind=kind_str,
        status=EdgeStatus(status).value,
    )
    session.add(edge)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise DuplicateError(
                "Request already exists",
                sender_id=sender_id,
                receiver_id=receiver_id,
                kind=kind_str,
            ) from exc
        if is_check_violation(exc):
            raise ValidationError("Cannot send a request to yourself") from exc
        raise
    return edge


async def transition_edge_status(
    session: AsyncSession,
    *,
    edge_id: str,
    from_status: EdgeStatus,
    to_status: EdgeStatus,
) -> bool:
    """Compare-and-swap an edge's status. Returns False when it did not match."""
    result = await session.execute(
        update(RelationshipEdge)
        .where(
            _eq(RelationshipEdge.id, edge_id),
            _eq(RelationshipEdge.status, from_status.value),
        )
        .values(status=to_status.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return affected_rows(result) > 0


async def delete_edges(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
    kind: EdgeKind | str | None = None,
    statuses: Iterable[EdgeStatus] | None = None,
) -> int:
    """Delete sender -> receiver edges matching the optional filters."""
    conditions = [
        _eq(RelationshipEdge.sender_id, sender_id),
        _eq(RelationshipEdge.receiver_id, receiver_id),
    ]
    if kind is not None:
        conditions.append(_eq(RelationshipEdge.kind, kind_value(kind)))
    if statuses is not None:
        conditions.append(_in(RelationshipEdge.status, (s.value for s in statuses)))

    result = await session.execute(
        delete(RelationshipEdge)
        .where(*conditions)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return affected_rows(result)


async def delete_edge(session: AsyncSession, edge_id: str) -> bool:
    result = await session.execute(
        delete(RelationshipEdge)
        .where(_eq(RelationshipEdge.id, edge_id))
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return affected_rows(result) > 0


async def list_edges_between(
    session: AsyncSession,
    *,
    account_id: str,
    other_account_id: str,
) -> list[RelationshipEdge]:
    result = await session.execute(
        select(RelationshipEdge)
        .where(
            pair_filter(
                RelationshipEdge.sender_id,
                RelationshipEdge.receiver_id,
                account_id,
                other_account_id,
            )
        )
        .order_by(RelationshipEdge.created_at, RelationshipEdge.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_edges_with_blocked_counterpart(
    session: AsyncSession,
    *,
    account_id: str,
) -> list[RelationshipEdge]:
    """Edges touching ``account_id`` whose other end is blocked either way."""
    result = await session.execute(
        select(RelationshipEdge)
        .where(
            or_(
                and_(
                    _eq(RelationshipEdge.sender_id, account_id),
                    build_blocked_either_direction_filter(
                        viewer_id=account_id,
                        candidate_user_id_column=cast(
                            ColumnElement[str], RelationshipEdge.receiver_id
                        ),
                    ),
                ),
                and_(
                    _eq(RelationshipEdge.receiver_id, account_id),
                    build_blocked_either_direction_filter(
                        viewer_id=account_id,
                        candidate_user_id_column=cast(
                            ColumnElement[str], RelationshipEdge.sender_id
                        ),
                    ),
                ),
            )
        )
        .order_by(RelationshipEdge.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def count_pending_incoming(
    session: AsyncSession,
    *,
    receiver_id: str,
    kind: EdgeKind | str | None = None,
) -> int:
    """Pending edges addressed to ``receiver_id`` from senders not blocked either way."""
    stmt = (
        select(func.count())
        .select_from(RelationshipEdge)
        .where(
            _eq(RelationshipEdge.receiver_id, receiver_id),
            _eq(RelationshipEdge.status, EdgeStatus.PENDING.value),
            build_not_blocked_either_direction_filter(
                viewer_id=receiver_id,
                candidate_user_id_column=cast(ColumnElement[str], RelationshipEdge.sender_id),
            ),
        )
    )
    if kind is not None:
        stmt = stmt.where(_eq(RelationshipEdge.kind, kind_value(kind)))
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def list_pending_incoming(
    session: AsyncSession,
    *,
    receiver_id: str,
    kind: EdgeKind | str,
    after_id: str | None,
    limit: int,
) -> list[RelationshipEdge]:
    """Keyset page of pending edges addressed to ``receiver_id``."""
    stmt = (
        select(RelationshipEdge)
        .where(
            _eq(RelationshipEdge.receiver_id, receiver_id),
            _eq(RelationshipEdge.kind, kind_value(kind)),
            _eq(RelationshipEdge.status, EdgeStatus.PENDING.value),
        )
        .order_by(RelationshipEdge.id)
        .limit(limit)
    )
    if after_id is not None:
        stmt = stmt.where(_gt(RelationshipEdge.id, after_id))
    result = await session.execute(stmt.execution_options(populate_existing=True))
    return list(result.scalars().all())


async def ensure_accepted_follow(
    session: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
) -> RelationshipEdge:
    """Make sure an accepted follow edge sender -> receiver exists.

    A pending follow is promoted in place; otherwise a new accepted edge is
    inserted. A concurrent insert is resolved by re-reading.
    """
    for _attempt in range(3):
        existing = await find_active_edge(
            session,
            sender_id=sender_id,
            receiver_id=receiver_id,
            kind=EdgeKind.FOLLOW,
        )
        if existing is not None:
            if existing.status == EdgeStatus.ACCEPTED.value:
                return existing
            await transition_edge_status(
                session,
                edge_id=existing.id,
                from_status=EdgeStatus.PENDING,
                to_status=EdgeStatus.ACCEPTED,
            )
            continue
        try:
            return await insert_edge(
                session,
                sender_id=sender_id,
                receiver_id=receiver_id,
                kind=EdgeKind.FOLLOW,
                status=EdgeStatus.ACCEPTED,
            )
        except DuplicateError:
            continue

    edge = await find_active_edge(
        session,
        sender_id=sender_id,
        receiver_id=receiver_id,
        kind=EdgeKind.FOLLOW,
    )
    if edge is None or edge.status != EdgeStatus.ACCEPTED.value:
        raise DuplicateError(
            "Follow relationship changed concurrently",
            sender_id=sender_id,
            receiver_id=receiver_id,
        )
    return edge


# Block edges


async def insert_block(
    session: AsyncSession,
    *,
    blocker_id: str,
    blocked_id: str,
) -> BlockEdge:
    block = BlockEdge(blocker_id=blocker_id, blocked_id=blocked_id)
    session.add(block)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise DuplicateError(
                "User already blocked",
                blocker_id=blocker_id,
                blocked_id=blocked_id,
            ) from exc
        if is_check_violation(exc):
            raise ValidationError("Cannot block yourself") from exc
        raise
    return block


async def delete_block(
    session: AsyncSession,
    *,
    blocker_id: str,
    blocked_id: str,
) -> bool:
    result = await session.execute(
        delete(BlockEdge)
        .where(
            _eq(BlockEdge.blocker_id, blocker_id),
            _eq(BlockEdge.blocked_id, blocked_id),
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return affected_rows(result) > 0


async def list_blocks_between(
    session: AsyncSession,
    *,
    account_id: str,
    other_account_id: str,
) -> list[BlockEdge]:
    result = await session.execute(
        select(BlockEdge).where(
            pair_filter(
                BlockEdge.blocker_id,
                BlockEdge.blocked_id,
                account_id,
                other_account_id,
            )
        )
    )
    return list(result.scalars().all())
