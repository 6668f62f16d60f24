"""Tests for privacy gating and the public-toggle bulk accept."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Account, EdgeKind, EdgeStatus, MembershipRelation, RelationshipEdge
from services.graph import (
    decide,
    get_membership,
    on_privacy_changed,
    reconcile,
    set_account_privacy,
    submit_follow,
    submit_friend,
)
from services.graph import projector as graph_projector
from services.notifications import NotificationType


async def _statuses(session: AsyncSession, receiver_id: str) -> list[str]:
    result = await session.execute(
        select(RelationshipEdge)
        .where(RelationshipEdge.receiver_id == receiver_id)
        .execution_options(populate_existing=True)
    )
    return sorted(edge.status for edge in result.scalars().all())


def test_decide_respects_privacy_and_kind() -> None:
    public = Account(username="public_account", is_private=False)
    private = Account(username="private_account", is_private=True)

    assert decide(public, EdgeKind.FOLLOW) == EdgeStatus.ACCEPTED
    assert decide(private, EdgeKind.FOLLOW) == EdgeStatus.PENDING
    assert decide(public, EdgeKind.FRIEND) == EdgeStatus.PENDING
    assert decide(private, "friend") == EdgeStatus.PENDING


@pytest.mark.asyncio
async def test_going_public_accepts_all_pending_follows(
    db_session: AsyncSession, make_account, notifier
):
    owner = await make_account("owner", is_private=True)
    followers = [await make_account(f"fan{index}") for index in range(5)]
    for follower in followers:
        await submit_follow(db_session, sender_id=follower.id, receiver_id=owner.id)

    result = await set_account_privacy(
        db_session, account_id=owner.id, is_private=False, notifier=notifier
    )

    assert result is not None
    assert result.accepted == 5
    assert result.failed == []
    assert result.exhausted is True
    assert await _statuses(db_session, owner.id) == [EdgeStatus.ACCEPTED.value] * 5
    assert await get_membership(
        db_session, account_id=owner.id, relation=MembershipRelation.FOLLOWER
    ) == {follower.id for follower in followers}
    assert len(notifier.of_type(NotificationType.REQUEST_ACCEPTED)) == 5


@pytest.mark.asyncio
async def test_bulk_accept_leaves_friend_requests_pending(
    db_session: AsyncSession, make_account
):
    owner = await make_account("owner", is_private=True)
    fan = await make_account("fan")
    friend = await make_account("friend")
    await submit_follow(db_session, sender_id=fan.id, receiver_id=owner.id)
    await submit_friend(db_session, sender_id=friend.id, receiver_id=owner.id)

    result = await set_account_privacy(db_session, account_id=owner.id, is_private=False)

    assert result is not None
    assert result.accepted == 1
    assert await _statuses(db_session, owner.id) == [
        EdgeStatus.ACCEPTED.value,
        EdgeStatus.PENDING.value,
    ]


@pytest.mark.asyncio
async def test_bounded_bulk_accept_resumes_without_duplicates(
    db_session: AsyncSession, make_account
):
    owner = await make_account("owner", is_private=True)
    followers = [await make_account(f"fan{index}") for index in range(7)]
    for follower in followers:
        await submit_follow(db_session, sender_id=follower.id, receiver_id=owner.id)
    await set_account_privacy(db_session, account_id=owner.id, is_private=True)

    first = await on_privacy_changed(
        db_session, account_id=owner.id, now_private=False, batch_size=2, max_items=4
    )
    assert first.accepted == 4
    assert first.exhausted is False

    second = await on_privacy_changed(
        db_session, account_id=owner.id, now_private=False, batch_size=2, max_items=4
    )
    assert second.accepted == 3
    assert second.exhausted is True

    third = await on_privacy_changed(db_session, account_id=owner.id, now_private=False)
    assert third.accepted == 0

    members = await get_membership(
        db_session, account_id=owner.id, relation=MembershipRelation.FOLLOWER
    )
    assert members == {follower.id for follower in followers}
    assert await _statuses(db_session, owner.id) == [EdgeStatus.ACCEPTED.value] * 7


@pytest.mark.asyncio
async def test_going_private_changes_nothing(db_session: AsyncSession, make_account):
    owner = await make_account("owner")
    fan = await make_account("fan")
    await submit_follow(db_session, sender_id=fan.id, receiver_id=owner.id)

    result = await set_account_privacy(db_session, account_id=owner.id, is_private=True)

    assert result is None
    assert await _statuses(db_session, owner.id) == [EdgeStatus.ACCEPTED.value]
    late = await make_account("late")
    pending = await submit_follow(db_session, sender_id=late.id, receiver_id=owner.id)
    assert pending.is_pending is True


@pytest.mark.asyncio
async def test_on_privacy_changed_to_private_is_noop(db_session: AsyncSession, make_account):
    owner = await make_account("owner", is_private=True)
    fan = await make_account("fan")
    await submit_follow(db_session, sender_id=fan.id, receiver_id=owner.id)

    result = await on_privacy_changed(db_session, account_id=owner.id, now_private=True)

    assert result.accepted == 0
    assert await _statuses(db_session, owner.id) == [EdgeStatus.PENDING.value]


@pytest.mark.asyncio
async def test_bulk_accept_continues_past_failed_item(
    db_session: AsyncSession, make_account, monkeypatch
):
    owner = await make_account("owner", is_private=True)
    followers = [await make_account(f"fan{index}") for index in range(3)]
    requests = [
        await submit_follow(db_session, sender_id=follower.id, receiver_id=owner.id)
        for follower in followers
    ]
    broken_edge_id = requests[1].edge.id
    real_apply = graph_projector.apply_accepted

    async def flaky_apply(session, edge):
        if edge.id == broken_edge_id:
            raise RuntimeError("projection store unavailable")
        await real_apply(session, edge)

    monkeypatch.setattr(graph_projector, "apply_accepted", flaky_apply)

    result = await set_account_privacy(db_session, account_id=owner.id, is_private=False)

    assert result is not None
    assert result.accepted == 2
    assert result.failed == [broken_edge_id]
    assert result.exhausted is True
    assert await _statuses(db_session, owner.id) == [EdgeStatus.ACCEPTED.value] * 3
    assert await get_membership(
        db_session, account_id=owner.id, relation=MembershipRelation.FOLLOWER
    ) == {followers[0].id, followers[2].id}

    monkeypatch.undo()
    repaired = await reconcile(db_session, account_id=owner.id)

    assert repaired.added == 1
    assert await get_membership(
        db_session, account_id=owner.id, relation=MembershipRelation.FOLLOWER
    ) == {follower.id for follower in followers}
