"""Integration tests for the notification inbox and live push socket."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from services.store_service.app.main import app
from services.store_service.models import Notification, NotificationType
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect
from tests.conftest import FakeSocket, make_token, seed_checkout


async def _notifications(db_session, user_id, count, read=0):
    now = datetime.now(timezone.utc)
    rows = [
        Notification(
            user_id=user_id,
            type=NotificationType.ORDER,
            title=f"Update {i}",
            message=f"Message {i}",
            is_read=i < read,
            created_at=now - timedelta(minutes=count - i),
        )
        for i in range(count)
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return rows


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_notifications_paginates(client, db_session, buyer):
    await _notifications(db_session, buyer.user_id, 5, read=2)
    await _notifications(db_session, "someone-else", 3)

    response = await client.get("/api/notifications", params={"page": 2, "limit": 2})

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["total"] == 5
    assert data["totalPages"] == 3
    assert data["currentPage"] == 2
    assert data["unreadCount"] == 3
    assert [n["title"] for n in data["notifications"]] == ["Update 2", "Update 1"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_unread_only(client, db_session, buyer):
    await _notifications(db_session, buyer.user_id, 4, read=3)

    response = await client.get("/api/notifications", params={"unreadOnly": "true"})

    data = response.json()
    assert data["total"] == 1
    assert [n["title"] for n in data["notifications"]] == ["Update 3"]
    assert data["notifications"][0]["isRead"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mark_one_and_all_read(client, db_session, buyer):
    rows = await _notifications(db_session, buyer.user_id, 3)

    response = await client.put(f"/api/notifications/{rows[0].id}/read")
    assert response.status_code == 200
    assert response.json()["message"] == "Notification marked as read"
    count = await client.get("/api/notifications/unread-count")
    assert count.json() == {"success": True, "unreadCount": 2}

    response = await client.put("/api/notifications/read-all")
    assert response.json()["message"] == "All notifications marked as read"
    count = await client.get("/api/notifications/unread-count")
    assert count.json()["unreadCount"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_notification(client, db_session, buyer):
    rows = await _notifications(db_session, buyer.user_id, 2)

    response = await client.delete(f"/api/notifications/{rows[0].id}")

    assert response.status_code == 200
    assert response.json()["message"] == "Notification deleted"
    assert (await client.get("/api/notifications")).json()["total"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_other_users_notification_is_not_found(client, db_session):
    rows = await _notifications(db_session, "someone-else", 1)

    for response in (
        await client.put(f"/api/notifications/{rows[0].id}/read"),
        await client.delete(f"/api/notifications/{rows[0].id}"),
        await client.delete(f"/api/notifications/{uuid.uuid4()}"),
    ):
        assert response.status_code == 404
        assert response.json()["message"] == "Notification not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_clear_all_only_touches_own(client, db_session, buyer):
    await _notifications(db_session, buyer.user_id, 3)
    await _notifications(db_session, "someone-else", 2)

    response = await client.delete("/api/notifications/clear-all")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "All notifications cleared",
        "deletedCount": 3,
    }
    assert (await client.get("/api/notifications")).json()["total"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_event_is_pushed_to_open_socket(client, db_session, buyer, registry):
    socket = FakeSocket()
    await registry.connect(buyer.user_id, socket)
    _, address = await seed_checkout(db_session, buyer.user_id)

    response = await client.post(
        "/api/payment/create-order",
        json={"addressId": str(address.id), "paymentMethod": "cod"},
    )

    assert response.status_code == 201, response.text
    assert [m["title"] for m in socket.messages] == ["Order Confirmed"]
    inbox = (await client.get("/api/notifications")).json()["notifications"]
    assert inbox[0]["sentVia"] == {"in_app": True, "push": True}


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


@pytest.mark.integration
def test_socket_greets_and_answers_ping():
    token = make_token(user_id="socket-user")

    with TestClient(app) as test_client:
        with test_client.websocket_connect(
            f"/api/notifications/ws?token={token}"
        ) as websocket:
            assert websocket.receive_json() == {
                "type": "connected",
                "userId": "socket-user",
            }
            assert app.state.connections.is_connected("socket-user")

            websocket.send_text("ping")
            assert websocket.receive_text() == "pong"


@pytest.mark.integration
@pytest.mark.parametrize("query", ["", "?token=not-a-jwt"])
def test_socket_rejects_missing_or_bad_token(query):
    with TestClient(app) as test_client:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with test_client.websocket_connect(f"/api/notifications/ws{query}"):
                pass

    assert exc_info.value.code == 1008
