"""Best-effort notification hand-off."""

from __future__ import annotations

import logging
from typing import Any

from services.notifications import NotificationDispatcher, NotificationType

logger = logging.getLogger(__name__)


async def notify_safely(
    notifier: NotificationDispatcher | None,
    type: NotificationType,
    *,
    from_id: str,
    to_id: str,
    context: dict[str, Any] | None = None,
) -> None:
    """Emit without ever failing the transition that triggered it."""
    if notifier is None:
        return
    try:
        await notifier.emit(type, from_id, to_id, context)
    except Exception as exc:
        logger.warning(
            "Failed to dispatch notification",
            extra={
                "notification_type": type.value,
                "account_id": from_id,
                "other_account_id": to_id,
            },
            exc_info=exc,
        )
