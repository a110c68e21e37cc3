"""Unit tests for notification dispatch and best-effort side effects."""

import logging

import pytest
from services.store_service.connections import ConnectionRegistry
from services.store_service.models import (
    Notification,
    NotificationPriority,
    NotificationType,
)
from services.store_service.services.notifications import (
    NotificationDispatcher,
    run_best_effort,
)
from sqlalchemy import func, select
from tests.conftest import FakeSocket


async def _count_notifications(db) -> int:
    return await db.scalar(select(func.count()).select_from(Notification))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_notify_persists_without_push_when_offline(db_session):
    dispatcher = NotificationDispatcher(ConnectionRegistry())

    notification = await dispatcher.notify(
        db_session,
        "u1",
        type=NotificationType.ORDER,
        title="Order Confirmed",
        message="Your order is confirmed",
    )

    assert notification.id is not None
    assert notification.is_read is False
    assert notification.priority == NotificationPriority.MEDIUM
    assert notification.sent_via == {"in_app": True, "push": False}
    assert await _count_notifications(db_session) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_notify_pushes_to_connected_user(db_session):
    registry = ConnectionRegistry()
    socket = FakeSocket()
    await registry.connect("u1", socket)
    dispatcher = NotificationDispatcher(registry)

    notification = await dispatcher.notify(
        db_session,
        "u1",
        type=NotificationType.PAYMENT,
        title="Payment Successful",
        message="Paid",
        priority=NotificationPriority.HIGH,
    )

    assert notification.sent_via == {"in_app": True, "push": True}
    assert len(socket.messages) == 1
    pushed = socket.messages[0]
    assert pushed["id"] == str(notification.id)
    assert pushed["type"] == "payment"
    assert pushed["title"] == "Payment Successful"
    assert "timestamp" in pushed


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_push_keeps_flag_false(db_session):
    registry = ConnectionRegistry()
    await registry.connect("u1", FakeSocket(broken=True))
    dispatcher = NotificationDispatcher(registry)

    notification = await dispatcher.notify(
        db_session,
        "u1",
        type=NotificationType.ORDER,
        title="Order Cancelled",
        message="Cancelled",
    )

    assert notification.sent_via["push"] is False
    assert registry.is_connected("u1") is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_run_best_effort_returns_result():
    async def side_effect(value, *, suffix):
        return value + suffix

    assert await run_best_effort("concat", side_effect, "a", suffix="b") == "ab"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_run_best_effort_logs_and_swallows_failure(caplog):
    async def side_effect():
        raise RuntimeError("boom")

    with caplog.at_level(logging.ERROR):
        result = await run_best_effort("Exploding task", side_effect)

    assert result is None
    assert "Exploding task failed (non-critical)" in caplog.text


@pytest.mark.asyncio
@pytest.mark.unit
async def test_notify_best_effort_rolls_back_on_failure(db_session, monkeypatch):
    dispatcher = NotificationDispatcher(ConnectionRegistry())

    async def broken_commit():
        raise RuntimeError("database went away")

    monkeypatch.setattr(db_session, "commit", broken_commit)
    result = await dispatcher.notify_best_effort(
        db_session,
        "u1",
        type=NotificationType.ORDER,
        title="Order Confirmed",
        message="Confirmed",
    )
    monkeypatch.undo()

    assert result is None
    assert await _count_notifications(db_session) == 0
