"""Notification dispatch boundary.

The relationship engine only hands events to a dispatcher; persistence and
delivery belong to the notification service. Dispatchers are created and
shut down by the application lifespan and passed in explicitly.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    FOLLOW = "follow"
    FOLLOW_REQUEST = "follow_request"
    FRIEND_REQUEST = "friend_request"
    REQUEST_ACCEPTED = "request_accepted"
    REQUEST_REJECTED = "request_rejected"


@dataclass(frozen=True, slots=True)
class NotificationEvent:
    type: NotificationType
    from_id: str
    to_id: str
    context: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


NotificationSink = Callable[[NotificationEvent], Awaitable[None]]


@runtime_checkable
class NotificationDispatcher(Protocol):
    async def start(self) -> None: ...

    async def emit(
        self,
        type: NotificationType,
        from_id: str,
        to_id: str,
        context: dict[str, Any] | None = None,
    ) -> None: ...

    async def shutdown(self) -> None: ...


class LoggingNotificationDispatcher:
    """Writes every event to the log. Used when no delivery service is wired."""

    async def start(self) -> None:
        return None

    async def emit(
        self,
        type: NotificationType,
        from_id: str,
        to_id: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        logger.info(
            "Notification emitted",
            extra={
                "notification_type": NotificationType(type).value,
                "account_id": from_id,
                "other_account_id": to_id,
                "edge_id": (context or {}).get("edge_id"),
            },
        )

    async def shutdown(self) -> None:
        return None


async def _log_sink(event: NotificationEvent) -> None:
    logger.info(
        "Notification delivered",
        extra={
            "notification_type": event.type.value,
            "account_id": event.from_id,
            "other_account_id": event.to_id,
        },
    )


class QueuedNotificationDispatcher:
    """Bounded in-process queue drained by one worker task into ``sink``.

    ``emit`` never waits on delivery: a full queue or a stopped dispatcher
    drops the event with a warning. ``shutdown`` drains what is queued, up to
    ``shutdown_timeout_seconds``.
    """

    def __init__(
        self,
        sink: NotificationSink | None = None,
        *,
        max_queue_size: int = 1000,
        shutdown_timeout_seconds: float = 5.0,
    ) -> None:
        if max_queue_size <= 0:
            raise ValueError("max_queue_size must be positive")
        self._sink = sink or _log_sink
        self._max_queue_size = max_queue_size
        self._shutdown_timeout_seconds = shutdown_timeout_seconds
        self._queue: asyncio.Queue[NotificationEvent] | None = None
        self._worker: asyncio.Task[None] | None = None
        self.dropped = 0
        self.delivered = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._worker = asyncio.create_task(self._drain())

    async def emit(
        self,
        type: NotificationType,
        from_id: str,
        to_id: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        event = NotificationEvent(
            type=NotificationType(type),
            from_id=from_id,
            to_id=to_id,
            context=dict(context or {}),
        )
        if not self.running or self._queue is None:
            self.dropped += 1
            logger.warning(
                "Notification dispatcher not running; dropping event",
                extra={"notification_type": event.type.value},
            )
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Notification queue full; dropping event",
                extra={"notification_type": event.type.value},
            )

    async def shutdown(self) -> None:
        worker = self._worker
        queue = self._queue
        if worker is None or queue is None:
            return
        try:
            await asyncio.wait_for(queue.join(), timeout=self._shutdown_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Notification queue not drained before shutdown",
                extra={"pending": queue.qsize()},
            )
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        self._queue = None

    async def _drain(self) -> None:
        queue = self._queue
        assert queue is not None
        while True:
            event = await queue.get()
            try:
                await self._sink(event)
                self.delivered += 1
            except Exception as exc:
                logger.warning(
                    "Notification sink failed",
                    extra={"notification_type": event.type.value},
                    exc_info=exc,
                )
            finally:
                queue.task_done()


__all__ = [
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
    "NotificationEvent",
    "NotificationSink",
    "NotificationType",
    "QueuedNotificationDispatcher",
]
