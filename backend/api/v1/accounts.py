"""Account-level endpoints: privacy toggle and membership repair."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_account, get_db, get_notifier
from models import Account
from services.graph import reconcile, set_account_privacy
from services.graph.errors import ForbiddenError
from services.notifications import NotificationDispatcher

router = APIRouter(tags=["accounts"])
logger = logging.getLogger(__name__)


class PrivacyUpdate(BaseModel):
    is_private: bool


class BulkAcceptSummary(BaseModel):
    accepted: int
    skipped: int
    failed: list[str]
    exhausted: bool


class PrivacyResponse(BaseModel):
    is_private: bool
    bulk_accept: BulkAcceptSummary | None = None


class ReconcileResponse(BaseModel):
    account_id: str
    added: int
    removed: int
    purged_edges: int


@router.patch("/me/privacy", response_model=PrivacyResponse)
async def update_my_privacy(
    payload: PrivacyUpdate,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> PrivacyResponse:
    account_id = current_account.id
    result = await set_account_privacy(
        session,
        account_id=account_id,
        is_private=payload.is_private,
        notifier=notifier,
    )
    logger.info(
        "Account privacy updated",
        extra={"account_id": account_id, "is_private": payload.is_private},
    )
    summary = None
    if result is not None:
        summary = BulkAcceptSummary(
            accepted=result.accepted,
            skipped=result.skipped,
            failed=list(result.failed),
            exhausted=result.exhausted,
        )
    return PrivacyResponse(is_private=payload.is_private, bulk_accept=summary)


@router.post("/users/{account_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_account(
    account_id: str,
    current_account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_db),
) -> ReconcileResponse:
    if account_id != current_account.id:
        raise ForbiddenError("You can only reconcile your own account", account_id=account_id)
    result = await reconcile(session, account_id=account_id)
    return ReconcileResponse(
        account_id=result.account_id,
        added=result.added,
        removed=result.removed,
        purged_edges=result.purged_edges,
    )
