import pytest

from realtime.core import ChatCore
from realtime.models import RoomKey

from conftest import FakeWebSocket, StaticResolver, settle


@pytest.fixture
def core_for(store):
    def _core_for(identity):
        return ChatCore(store, StaticResolver(identity))
    return _core_for


async def test_unauthenticated_connection_is_rejected(core_for):
    core = core_for(None)
    websocket = FakeWebSocket()

    connection = await core.lifecycle.open(websocket)

    assert connection is None
    assert websocket.close_code == 1008
    assert websocket.accepted is False
    assert len(core.presence) == 0
    assert len(core.connections) == 0


async def test_open_registers_presence_and_greets(core_for, alice):
    core = core_for(alice)
    websocket = FakeWebSocket()

    connection = await core.lifecycle.open(websocket)
    await settle()

    assert websocket.accepted is True
    assert core.presence.lookup(alice.id) == connection.handle
    assert core.connections.get(connection.handle) is connection
    assert websocket.sent == [{
        "event": "connected",
        "data": {"socketId": connection.handle, "user": {"id": 1, "username": "alice"}},
    }]
    await core.lifecycle.close(connection)


async def test_close_deregisters_everywhere(core_for, alice):
    core = core_for(alice)
    connection = await core.lifecycle.open(FakeWebSocket())
    await core.join_room(connection, RoomKey.group(1))
    await core.join_room(connection, RoomKey.direct(2))

    await core.lifecycle.close(connection)

    assert core.presence.lookup(alice.id) is None
    assert core.rooms.active_rooms() == []
    assert core.connections.get(connection.handle) is None
    assert connection.closed is True
    assert connection.push("group-message", {}) is False


async def test_closing_old_connection_keeps_newer_presence(core_for, alice):
    core = core_for(alice)
    old = await core.lifecycle.open(FakeWebSocket())
    new = await core.lifecycle.open(FakeWebSocket())

    assert old.handle != new.handle

    await core.lifecycle.close(old)

    assert core.presence.lookup(alice.id) == new.handle
    await core.lifecycle.close(new)


async def test_pushes_are_written_in_order(core_for, alice):
    core = core_for(alice)
    websocket = FakeWebSocket()
    connection = await core.lifecycle.open(websocket)

    for n in range(3):
        connection.push("dm-message", {"id": n})
    await settle()

    assert [frame["data"]["id"] for frame in websocket.sent[1:]] == [0, 1, 2]
    await core.lifecycle.close(connection)
