"""FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated, NoReturn

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_session
from models import Account
from services.graph.errors import ValidationError
from services.graph.store import validate_identifier
from services.notifications import LoggingNotificationDispatcher, NotificationDispatcher

ACCOUNT_ID_HEADER = "X-Account-Id"


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def _raise_unauthenticated() -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
    )


async def get_current_account(
    x_account_id: Annotated[str | None, Header(alias=ACCOUNT_ID_HEADER)] = None,
    session: AsyncSession = Depends(get_db),
) -> Account:
    """Resolve the acting account set by the upstream authentication layer."""
    if not x_account_id:
        _raise_unauthenticated()
    try:
        account_id = validate_identifier(str(x_account_id))
    except ValidationError:
        _raise_unauthenticated()
    account = await session.get(Account, account_id)
    if account is None:
        _raise_unauthenticated()
    return account


def get_notifier(request: Request) -> NotificationDispatcher:
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        return LoggingNotificationDispatcher()
    return notifier
