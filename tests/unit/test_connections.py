"""Unit tests for the push connection registry."""

import pytest
from services.store_service.connections import ConnectionRegistry
from tests.conftest import FakeSocket


@pytest.mark.asyncio
@pytest.mark.unit
async def test_send_reaches_every_socket_of_the_user():
    registry = ConnectionRegistry()
    phone, laptop, other = FakeSocket(), FakeSocket(), FakeSocket()
    await registry.connect("u1", phone)
    await registry.connect("u1", laptop)
    await registry.connect("u2", other)

    delivered = await registry.send_to_user("u1", {"title": "hi"})

    assert delivered == 2
    assert phone.messages == [{"title": "hi"}]
    assert laptop.messages == [{"title": "hi"}]
    assert other.messages == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_send_to_unknown_user_delivers_nothing():
    registry = ConnectionRegistry()

    assert await registry.send_to_user("nobody", {"title": "hi"}) == 0
    assert registry.is_connected("nobody") is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_broken_socket_is_pruned():
    registry = ConnectionRegistry()
    good, broken = FakeSocket(), FakeSocket(broken=True)
    await registry.connect("u1", good)
    await registry.connect("u1", broken)

    delivered = await registry.send_to_user("u1", {"n": 1})

    assert delivered == 1
    assert registry.connection_count("u1") == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_disconnect_removes_user_when_last_socket_goes():
    registry = ConnectionRegistry()
    socket = FakeSocket()
    await registry.connect("u1", socket)
    assert registry.is_connected("u1")

    await registry.disconnect("u1", socket)
    # Disconnecting twice is harmless
    await registry.disconnect("u1", socket)

    assert registry.is_connected("u1") is False
    assert registry.connection_count() == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_close_shuts_sockets_and_refuses_new_ones():
    registry = ConnectionRegistry()
    socket = FakeSocket()
    await registry.connect("u1", socket)

    await registry.close()

    assert socket.closed_with == 1001
    assert registry.connection_count() == 0
    with pytest.raises(RuntimeError):
        await registry.connect("u1", FakeSocket())
