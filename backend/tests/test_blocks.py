"""Tests for account blocking."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import BlockEdge, MembershipRelation, RelationshipEdge
from services.graph import (
    DuplicateError,
    NotFoundError,
    ValidationError,
    accept_request,
    block_account,
    get_block_state,
    get_membership,
    list_blocked_accounts,
    list_incoming_requests,
    submit_follow,
    submit_friend,
    unblock_account,
)


async def _count(session: AsyncSession, model) -> int:
    result = await session.execute(select(model))
    return len(result.scalars().all())


@pytest.mark.asyncio
async def test_block_tears_down_every_edge_between_pair(
    db_session: AsyncSession, make_account
):
    alice = await make_account("alice")
    bob = await make_account("bob")
    carol = await make_account("carol")
    friend_request = await submit_friend(db_session, sender_id=alice.id, receiver_id=bob.id)
    await accept_request(db_session, edge_id=friend_request.edge.id, acting_account_id=bob.id)
    await submit_friend(db_session, sender_id=bob.id, receiver_id=carol.id)
    await submit_follow(db_session, sender_id=carol.id, receiver_id=alice.id)

    await block_account(db_session, blocker_id=alice.id, blocked_id=bob.id)

    result = await db_session.execute(select(RelationshipEdge))
    remaining = result.scalars().all()
    assert {(edge.sender_id, edge.receiver_id) for edge in remaining} == {
        (bob.id, carol.id),
        (carol.id, alice.id),
    }
    for account_id, other_id in ((alice.id, bob.id), (bob.id, alice.id)):
        for relation in MembershipRelation:
            assert other_id not in await get_membership(
                db_session, account_id=account_id, relation=relation
            )
    assert await get_membership(
        db_session, account_id=alice.id, relation=MembershipRelation.FOLLOWER
    ) == {carol.id}


@pytest.mark.asyncio
async def test_block_twice_is_duplicate(db_session: AsyncSession, make_account):
    alice = await make_account("alice")
    bob = await make_account("bob")

    await block_account(db_session, blocker_id=alice.id, blocked_id=bob.id)
    with pytest.raises(DuplicateError):
        await block_account(db_session, blocker_id=alice.id, blocked_id=bob.id)

    assert await _count(db_session, BlockEdge) == 1


@pytest.mark.asyncio
async def test_block_validates_target(db_session: AsyncSession, make_account):
    alice = await make_account("alice")

    with pytest.raises(ValidationError):
        await block_account(db_session, blocker_id=alice.id, blocked_id=alice.id)
    with pytest.raises(NotFoundError):
        await block_account(
            db_session,
            blocker_id=alice.id,
            blocked_id="00000000-0000-0000-0000-000000000000",
        )


@pytest.mark.asyncio
async def test_block_state_is_directional(db_session: AsyncSession, make_account):
    alice = await make_account("alice")
    bob = await make_account("bob")

    await block_account(db_session, blocker_id=alice.id, blocked_id=bob.id)

    from_alice = await get_block_state(db_session, viewer_id=alice.id, target_id=bob.id)
    from_bob = await get_block_state(db_session, viewer_id=bob.id, target_id=alice.id)
    assert (from_alice.is_blocked, from_alice.is_blocked_by) == (True, False)
    assert (from_bob.is_blocked, from_bob.is_blocked_by) == (False, True)


@pytest.mark.asyncio
async def test_unblock_is_idempotent_and_does_not_restore(
    db_session: AsyncSession, make_account
):
    alice = await make_account("alice")
    bob = await make_account("bob")
    await submit_follow(db_session, sender_id=bob.id, receiver_id=alice.id)
    await block_account(db_session, blocker_id=alice.id, blocked_id=bob.id)

    assert await unblock_account(db_session, blocker_id=alice.id, blocked_id=bob.id) is True
    assert await unblock_account(db_session, blocker_id=alice.id, blocked_id=bob.id) is False

    assert await _count(db_session, RelationshipEdge) == 0
    assert await get_membership(
        db_session, account_id=alice.id, relation=MembershipRelation.FOLLOWER
    ) == set()
    again = await submit_follow(db_session, sender_id=bob.id, receiver_id=alice.id)
    assert again.is_pending is False


@pytest.mark.asyncio
async def test_list_blocked_accounts(db_session: AsyncSession, make_account):
    alice = await make_account("alice")
    bob = await make_account("bob")
    carol = await make_account("carol")
    await block_account(db_session, blocker_id=alice.id, blocked_id=bob.id)
    await block_account(db_session, blocker_id=alice.id, blocked_id=carol.id)
    await block_account(db_session, blocker_id=bob.id, blocked_id=carol.id)

    blocked = await list_blocked_accounts(db_session, blocker_id=alice.id)

    assert [account.id for account in blocked] == [bob.id, carol.id]
    paged = await list_blocked_accounts(db_session, blocker_id=alice.id, limit=1, offset=1)
    assert [account.id for account in paged] == [carol.id]


@pytest.mark.asyncio
async def test_incoming_requests_hide_blocked_senders(db_session: AsyncSession, make_account):
    owner = await make_account("owner", is_private=True)
    fan = await make_account("fan")
    await submit_follow(db_session, sender_id=fan.id, receiver_id=owner.id)

    assert len(await list_incoming_requests(db_session, account_id=owner.id)) == 1

    await block_account(db_session, blocker_id=fan.id, blocked_id=owner.id)

    assert await list_incoming_requests(db_session, account_id=owner.id) == []
