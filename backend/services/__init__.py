"""Business logic services."""

from .notifications import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    QueuedNotificationDispatcher,
)

__all__ = [
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
    "QueuedNotificationDispatcher",
]
