"""
Tests for the websocket connection manager
"""

from datetime import datetime, timezone

import pytest

from cardvault.schemas.notification import NotificationRead
from cardvault.services.broadcast import ConnectionManager

from conftest import FakeWebSocket

pytestmark = pytest.mark.asyncio


def notification(notification_id="n-1", user_id="alice"):
    return NotificationRead(
        id=notification_id,
        card_id="card-1",
        user_id=user_id,
        title="New Transaction",
        message="₹1500.00 spent at Amazon",
        type="transaction",
        is_read=False,
        created_at=datetime(2026, 10, 16, 9, 30, tzinfo=timezone.utc),
    )


async def test_every_connection_of_the_user_receives_it():
    manager = ConnectionManager()
    phone, laptop, other = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
    await manager.connect(phone, "alice")
    await manager.connect(laptop, "alice")
    await manager.connect(other, "bob")

    delivered = await manager.broadcast(notification(), "alice")

    assert delivered == 2
    assert phone.accepted and laptop.accepted
    assert phone.sent == laptop.sent == [{
        "type": "notification",
        "data": {
            "id": "n-1",
            "type": "transaction",
            "title": "New Transaction",
            "message": "₹1500.00 spent at Amazon",
            "cardId": "card-1",
            "read": False,
            "createdAt": "2026-10-16T09:30:00+00:00",
        },
    }]
    assert other.sent == []


async def test_user_without_connections():
    manager = ConnectionManager()
    assert await manager.broadcast(notification(), "alice") == 0


async def test_dead_socket_is_dropped():
    manager = ConnectionManager()
    alive, dead = FakeWebSocket(), FakeWebSocket(fail=True)
    await manager.connect(alive, "alice")
    await manager.connect(dead, "alice")

    assert await manager.broadcast(notification(), "alice") == 1
    assert manager.connection_count("alice") == 1
    assert len(alive.sent) == 1


async def test_disconnect():
    manager = ConnectionManager()
    socket = FakeWebSocket()
    await manager.connect(socket, "alice")

    manager.disconnect(socket, "alice")
    manager.disconnect(socket, "alice")

    assert manager.connection_count("alice") == 0
    assert "alice" not in manager.connections
