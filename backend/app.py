"""FastAPI application factory for the social graph backend."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.errors import register_error_handlers
from api.v1 import accounts, relationships
from core import configure_logging, settings
from services.notifications import NotificationDispatcher, QueuedNotificationDispatcher

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(settings.log_level, settings.log_format)
    notifier: NotificationDispatcher | None = getattr(app.state, "notifier", None)
    if notifier is None:
        notifier = QueuedNotificationDispatcher(
            max_queue_size=settings.notification_queue_size,
            shutdown_timeout_seconds=settings.notification_shutdown_timeout_seconds,
        )
        app.state.notifier = notifier
    await notifier.start()
    logger.info("Social graph API started")
    try:
        yield
    finally:
        await notifier.shutdown()
        logger.info("Social graph API stopped")


def create_app(*, notifier: NotificationDispatcher | None = None) -> FastAPI:
    """Build the app; ``notifier`` overrides the queued dispatcher."""
    application = FastAPI(title="Social Graph API", lifespan=lifespan)
    if notifier is not None:
        application.state.notifier = notifier
    register_error_handlers(application)
    application.include_router(relationships.router, prefix=API_PREFIX)
    application.include_router(accounts.router, prefix=API_PREFIX)
    return application
