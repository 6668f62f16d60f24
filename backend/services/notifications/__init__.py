"""Notification dispatch used by the relationship engine."""

from .dispatcher import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    NotificationEvent,
    NotificationSink,
    NotificationType,
    QueuedNotificationDispatcher,
)

__all__ = [
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
    "NotificationEvent",
    "NotificationSink",
    "NotificationType",
    "QueuedNotificationDispatcher",
]
