"""Tests for notification dispatchers."""

import asyncio

import pytest

from services.notifications import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    NotificationEvent,
    NotificationType,
    QueuedNotificationDispatcher,
)


@pytest.mark.asyncio
async def test_queued_dispatcher_drains_on_shutdown():
    delivered: list[NotificationEvent] = []

    async def sink(event: NotificationEvent) -> None:
        await asyncio.sleep(0)
        delivered.append(event)

    dispatcher = QueuedNotificationDispatcher(sink, max_queue_size=10)
    await dispatcher.start()
    for index in range(3):
        await dispatcher.emit(NotificationType.FOLLOW, "a", f"b{index}", {"edge_id": str(index)})
    await dispatcher.shutdown()

    assert [event.to_id for event in delivered] == ["b0", "b1", "b2"]
    assert dispatcher.delivered == 3
    assert dispatcher.running is False


@pytest.mark.asyncio
async def test_queued_dispatcher_drops_when_full():
    release = asyncio.Event()

    async def sink(event: NotificationEvent) -> None:
        await release.wait()

    dispatcher = QueuedNotificationDispatcher(sink, max_queue_size=1, shutdown_timeout_seconds=1)
    await dispatcher.start()
    await dispatcher.emit(NotificationType.FOLLOW, "a", "b")
    await asyncio.sleep(0)
    await dispatcher.emit(NotificationType.FOLLOW, "a", "c")
    await dispatcher.emit(NotificationType.FOLLOW, "a", "d")

    assert dispatcher.dropped == 1
    release.set()
    await dispatcher.shutdown()
    assert dispatcher.delivered == 2


@pytest.mark.asyncio
async def test_queued_dispatcher_survives_sink_errors():
    calls: list[str] = []

    async def sink(event: NotificationEvent) -> None:
        calls.append(event.to_id)
        if event.to_id == "bad":
            raise RuntimeError("sink down")

    dispatcher = QueuedNotificationDispatcher(sink)
    await dispatcher.start()
    await dispatcher.emit(NotificationType.FOLLOW_REQUEST, "a", "bad")
    await dispatcher.emit(NotificationType.FOLLOW_REQUEST, "a", "good")
    await dispatcher.shutdown()

    assert calls == ["bad", "good"]
    assert dispatcher.delivered == 1


@pytest.mark.asyncio
async def test_emit_before_start_is_dropped():
    dispatcher = QueuedNotificationDispatcher()

    await dispatcher.emit(NotificationType.FOLLOW, "a", "b")

    assert dispatcher.dropped == 1


def test_queue_size_must_be_positive():
    with pytest.raises(ValueError):
        QueuedNotificationDispatcher(max_queue_size=0)


def test_dispatchers_satisfy_protocol():
    assert isinstance(LoggingNotificationDispatcher(), NotificationDispatcher)
    assert isinstance(QueuedNotificationDispatcher(), NotificationDispatcher)
