"""Follow, friend and block endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_account, get_db, get_notifier
from models import Account, EdgeKind, RelationshipEdge
from services.graph import (
    RelationshipStatus,
    accept_request,
    block_account,
    cancel_request,
    count_incoming_requests,
    get_block_state,
    get_status,
    list_blocked_accounts,
    list_followers,
    list_following,
    list_friends,
    list_incoming_requests,
    list_outgoing_requests,
    reject_request,
    remove_follower,
    submit_follow,
    submit_friend,
    unblock_account,
    unfollow,
    unfriend,
)
from services.graph.errors import NotFoundError
from services.notifications import NotificationDispatcher

from .pagination import PageLimit, PageOffset, fetch_limit, paginate

router = APIRouter(tags=["relationships"])


class AccountPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    is_private: bool = False


class RelationshipEdgePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: str
    receiver_id: str
    kind: Literal["follow", "friend"]
    status: Literal["pending", "accepted", "rejected"]
    created_at: datetime


class RequestMutationResponse(BaseModel):
    detail: str
    state: Literal["following", "requested"]
    edge: RelationshipEdgePublic


class RequestDecisionResponse(BaseModel):
    detail: str
    edge: RelationshipEdgePublic


class MutationResponse(BaseModel):
    detail: str
    changed: bool


class BlockMutationResponse(BaseModel):
    detail: str
    blocked: bool


class RequestCountResponse(BaseModel):
    count: int


class RelationshipStatusResponse(BaseModel):
    status: RelationshipStatus
    is_blocked: bool = False
    is_blocked_by: bool = False


def _accounts(rows: list[Account]) -> list[AccountPublic]:
    return [AccountPublic.model_validate(row) for row in rows]


def _edges(rows: list[RelationshipEdge]) -> list[RelationshipEdgePublic]:
    return [RelationshipEdgePublic.model_validate(row) for row in rows]


@router.post(
    "/users/{account_id}/follow",
    response_model=RequestMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def follow_account(
    account_id: str,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> RequestMutationResponse:
    result = await submit_follow(
        session,
        sender_id=current_account.id,
        receiver_id=account_id,
        notifier=notifier,
    )
    if result.is_pending:
        return RequestMutationResponse(
            detail="Follow request sent",
            state="requested",
            edge=RelationshipEdgePublic.model_validate(result.edge),
        )
    return RequestMutationResponse(
        detail="Followed",
        state="following",
        edge=RelationshipEdgePublic.model_validate(result.edge),
    )


@router.delete("/users/{account_id}/follow", response_model=MutationResponse)
async def unfollow_account(
    account_id: str,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> MutationResponse:
    removed = await unfollow(session, sender_id=current_account.id, receiver_id=account_id)
    return MutationResponse(detail="Unfollowed" if removed else "Not following", changed=removed)


@router.post(
    "/users/{account_id}/friend-requests",
    response_model=RequestMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_friend_request(
    account_id: str,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> RequestMutationResponse:
    result = await submit_friend(
        session,
        sender_id=current_account.id,
        receiver_id=account_id,
        notifier=notifier,
    )
    return RequestMutationResponse(
        detail="Friend request sent",
        state="requested",
        edge=RelationshipEdgePublic.model_validate(result.edge),
    )


@router.delete("/users/{account_id}/follow-requests", response_model=MutationResponse)
async def cancel_account_request(
    account_id: str,
    kind: Annotated[Literal["follow", "friend"], Query()] = "follow",
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> MutationResponse:
    removed = await cancel_request(
        session,
        sender_id=current_account.id,
        receiver_id=account_id,
        kind=EdgeKind(kind),
    )
    return MutationResponse(
        detail="Request cancelled" if removed else "No pending request",
        changed=removed,
    )


@router.delete("/users/{account_id}/friend", response_model=MutationResponse)
async def unfriend_account(
    account_id: str,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> MutationResponse:
    removed = await unfriend(
        session,
        account_id=current_account.id,
        other_account_id=account_id,
    )
    return MutationResponse(detail="Unfriended" if removed else "Not connected", changed=removed)


@router.delete("/me/followers/{follower_id}", response_model=MutationResponse)
async def remove_my_follower(
    follower_id: str,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> MutationResponse:
    removed = await remove_follower(
        session,
        account_id=current_account.id,
        follower_id=follower_id,
    )
    return MutationResponse(
        detail="Follower removed" if removed else "Not a follower",
        changed=removed,
    )


@router.post("/requests/{edge_id}/accept", response_model=RequestDecisionResponse)
async def accept_incoming_request(
    edge_id: str,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> RequestDecisionResponse:
    edge = await accept_request(
        session,
        edge_id=edge_id,
        acting_account_id=current_account.id,
        notifier=notifier,
    )
    return RequestDecisionResponse(
        detail="Request accepted",
        edge=RelationshipEdgePublic.model_validate(edge),
    )


@router.post("/requests/{edge_id}/reject", response_model=RequestDecisionResponse)
async def reject_incoming_request(
    edge_id: str,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> RequestDecisionResponse:
    edge = await reject_request(
        session,
        edge_id=edge_id,
        acting_account_id=current_account.id,
        notifier=notifier,
    )
    return RequestDecisionResponse(
        detail="Request rejected",
        edge=RelationshipEdgePublic.model_validate(edge),
    )


@router.get("/me/requests/incoming", response_model=list[RelationshipEdgePublic])
async def list_my_incoming_requests(
    response: Response,
    kind: Annotated[Literal["follow", "friend"] | None, Query()] = None,
    limit: PageLimit = None,
    offset: PageOffset = 0,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> list[RelationshipEdgePublic]:
    rows = await list_incoming_requests(
        session,
        account_id=current_account.id,
        kind=kind,
        limit=fetch_limit(limit),
        offset=offset,
    )
    return _edges(paginate(rows, response, limit=limit, offset=offset))


@router.get("/me/requests/incoming/count", response_model=RequestCountResponse)
async def count_my_incoming_requests(
    kind: Annotated[Literal["follow", "friend"] | None, Query()] = None,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> RequestCountResponse:
    count = await count_incoming_requests(
        session,
        account_id=current_account.id,
        kind=kind,
    )
    return RequestCountResponse(count=count)


@router.get("/me/requests/outgoing", response_model=list[RelationshipEdgePublic])
async def list_my_outgoing_requests(
    response: Response,
    kind: Annotated[Literal["follow", "friend"] | None, Query()] = None,
    limit: PageLimit = None,
    offset: PageOffset = 0,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> list[RelationshipEdgePublic]:
    rows = await list_outgoing_requests(
        session,
        account_id=current_account.id,
        kind=kind,
        limit=fetch_limit(limit),
        offset=offset,
    )
    return _edges(paginate(rows, response, limit=limit, offset=offset))


@router.post("/users/{account_id}/block", response_model=BlockMutationResponse)
async def block_user(
    account_id: str,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> BlockMutationResponse:
    await block_account(session, blocker_id=current_account.id, blocked_id=account_id)
    return BlockMutationResponse(detail="User blocked", blocked=True)


@router.delete("/users/{account_id}/block", response_model=BlockMutationResponse)
async def unblock_user(
    account_id: str,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> BlockMutationResponse:
    removed = await unblock_account(
        session,
        blocker_id=current_account.id,
        blocked_id=account_id,
    )
    return BlockMutationResponse(
        detail="User unblocked" if removed else "User was not blocked",
        blocked=False,
    )


@router.get("/me/blocked-users", response_model=list[AccountPublic])
async def list_my_blocked_users(
    response: Response,
    limit: PageLimit = None,
    offset: PageOffset = 0,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> list[AccountPublic]:
    rows = await list_blocked_accounts(
        session,
        blocker_id=current_account.id,
        limit=fetch_limit(limit),
        offset=offset,
    )
    return _accounts(paginate(rows, response, limit=limit, offset=offset))


@router.get("/users/{account_id}/relationship", response_model=RelationshipStatusResponse)
async def get_relationship_status(
    account_id: str,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> RelationshipStatusResponse:
    relationship = await get_status(
        session,
        account_id=current_account.id,
        other_account_id=account_id,
    )
    block_state = await get_block_state(
        session,
        viewer_id=current_account.id,
        target_id=account_id,
    )
    return RelationshipStatusResponse(
        status=relationship,
        is_blocked=block_state.is_blocked,
        is_blocked_by=block_state.is_blocked_by,
    )


async def _ensure_graph_visible(
    session: AsyncSession,
    *,
    viewer_id: str,
    account_id: str,
) -> None:
    if viewer_id == account_id:
        return
    block_state = await get_block_state(session, viewer_id=viewer_id, target_id=account_id)
    if block_state.is_blocked_by:
        raise NotFoundError("User not found", account_id=account_id)


@router.get("/users/{account_id}/followers", response_model=list[AccountPublic])
async def list_account_followers(
    account_id: str,
    response: Response,
    limit: PageLimit = None,
    offset: PageOffset = 0,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> list[AccountPublic]:
    await _ensure_graph_visible(session, viewer_id=current_account.id, account_id=account_id)
    rows = await list_followers(
        session,
        account_id=account_id,
        limit=fetch_limit(limit),
        offset=offset,
    )
    return _accounts(paginate(rows, response, limit=limit, offset=offset))


@router.get("/users/{account_id}/following", response_model=list[AccountPublic])
async def list_account_following(
    account_id: str,
    response: Response,
    limit: PageLimit = None,
    offset: PageOffset = 0,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> list[AccountPublic]:
    await _ensure_graph_visible(session, viewer_id=current_account.id, account_id=account_id)
    rows = await list_following(
        session,
        account_id=account_id,
        limit=fetch_limit(limit),
        offset=offset,
    )
    return _accounts(paginate(rows, response, limit=limit, offset=offset))


@router.get("/users/{account_id}/friends", response_model=list[AccountPublic])
async def list_account_friends(
    account_id: str,
    response: Response,
    limit: PageLimit = None,
    offset: PageOffset = 0,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> list[AccountPublic]:
    await _ensure_graph_visible(session, viewer_id=current_account.id, account_id=account_id)
    rows = await list_friends(
        session,
        account_id=account_id,
        limit=fetch_limit(limit),
        offset=offset,
    )
    return _accounts(paginate(rows, response, limit=limit, offset=offset))
