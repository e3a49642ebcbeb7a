import asyncio
import itertools
from collections import defaultdict
from datetime import datetime, timezone

import pytest

from auth import SessionIdentityResolver
from realtime.core import ChatCore
from realtime.errors import RoomFull, StorageError
from realtime.models import Identity, RoomKey, message_record

_handles = itertools.count(1)


class FakeStore:
    """In-memory stand-in for RedisStore with the same coroutine API."""

    def __init__(self):
        self.sessions = {}
        self.users = {}
        self.user_codes = {}
        self.friends = defaultdict(set)
        self.groups = {}
        self.group_codes = {}
        self.group_members = defaultdict(set)
        self.dm_pairs = {}
        self.dms = {}
        self.messages = defaultdict(list)
        self.insert_calls = []
        self.count_calls = []
        self.fail_inserts = False
        self.fail_counts = False
        self.insert_gates = {}
        self._ids = defaultdict(int)

    def _next_id(self, name):
        self._ids[name] += 1
        return self._ids[name]

    async def ping(self):
        return True

    async def close(self):
        pass

    async def create_session(self, identity, token=None, ttl=None):
        token = token or f"token-{identity.id}"
        self.sessions[token] = identity
        return token

    async def get_session_identity(self, token):
        return self.sessions.get(token)

    async def create_user(self, username, avatar=None):
        user_id = self._next_id("user")
        user = {"id": user_id, "username": username, "code": f"CODE{user_id:04d}", "avatar": avatar}
        self.users[user_id] = user
        self.user_codes[user["code"]] = user_id
        return dict(user)

    async def get_user(self, user_id):
        user = self.users.get(int(user_id))
        return dict(user) if user else None

    async def get_user_by_code(self, code):
        user_id = self.user_codes.get(code)
        return await self.get_user(user_id) if user_id else None

    async def add_friend(self, user_id, friend_id):
        added = friend_id not in self.friends[user_id]
        self.friends[user_id].add(friend_id)
        return added

    async def list_friends(self, user_id):
        return [dict(self.users[f]) for f in sorted(self.friends[user_id]) if f in self.users]

    async def create_group(self, name, creator_id):
        group_id = self._next_id("group")
        group = {"id": group_id, "name": name, "group_code": f"GRP{group_id:05d}"}
        self.groups[group_id] = group
        self.group_codes[group["group_code"]] = group_id
        self.group_members[group_id].add(creator_id)
        return dict(group)

    async def get_group_by_code(self, code):
        group_id = self.group_codes.get(code)
        return dict(self.groups[group_id]) if group_id else None

    async def count_group_members(self, group_id):
        self.count_calls.append(group_id)
        if self.fail_counts:
            raise StorageError()
        return len(self.group_members[group_id])

    async def add_group_member(self, group_id, user_id, capacity=10):
        members = self.group_members[group_id]
        if user_id in members:
            return False
        if len(members) >= capacity:
            raise RoomFull(f"Group is full ({capacity} max)")
        members.add(user_id)
        return True

    async def list_user_groups(self, user_id):
        return [dict(self.groups[g]) for g in sorted(self.groups) if user_id in self.group_members[g]]

    async def open_dm(self, user_id, other_id):
        pair = tuple(sorted((user_id, other_id)))
        if pair not in self.dm_pairs:
            dm_id = self._next_id("dm")
            self.dm_pairs[pair] = dm_id
            self.dms[dm_id] = pair
        return self.dm_pairs[pair]

    async def list_user_dms(self, user_id):
        dms = []
        for dm_id, (user_a, user_b) in sorted(self.dms.items()):
            if user_id in (user_a, user_b):
                other = user_b if user_a == user_id else user_a
                dms.append({"id": dm_id, "user": dict(self.users[other])})
        return dms

    async def insert_message(self, room_key, sender_id, sender_name, content):
        self.insert_calls.append((room_key, sender_id, content))
        gate = self.insert_gates.get(content)
        if gate is not None:
            await gate.wait()
        if self.fail_inserts:
            raise StorageError()
        message_id = self._next_id(f"message:{room_key.kind.value}")
        created_at = datetime.now(timezone.utc).isoformat()
        self.messages[room_key].append(
            message_record(room_key, message_id, sender_id, sender_name, content, created_at)
        )
        return {"id": message_id, "created_at": created_at}

    async def list_messages(self, room_key, limit=100):
        return list(self.messages[room_key][-limit:])


class FakeConnection:
    """Records pushed frames instead of writing to a socket."""

    def __init__(self, identity, handle=None):
        self.identity = identity
        self.handle = handle or f"sock-{next(_handles)}"
        self.frames = []
        self.closed = False

    def push(self, event, data, ack=None):
        frame = {"event": event, "data": data}
        if ack is not None:
            frame["ack"] = ack
        self.frames.append(frame)
        return True

    def events(self, name):
        return [frame["data"] for frame in self.frames if frame["event"] == name]

    async def close(self):
        self.closed = True


class FakeClient:
    host = "127.0.0.1"


class FakeWebSocket:
    def __init__(self):
        self.client = FakeClient()
        self.accepted = False
        self.close_code = None
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def close(self, code=1000, reason=None):
        self.close_code = code

    async def send_json(self, data):
        self.sent.append(data)


class StaticResolver:
    def __init__(self, identity):
        self.identity = identity

    async def resolve(self, connection):
        return self.identity


async def settle():
    """Let writer tasks drain their queues."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def core(store):
    return ChatCore(store, SessionIdentityResolver(store))


@pytest.fixture
def alice():
    return Identity(id=1, username="alice")


@pytest.fixture
def bob():
    return Identity(id=2, username="bob")


@pytest.fixture
def connect(core):
    """Register a recording connection with the core, as the lifecycle would."""
    def _connect(identity):
        connection = FakeConnection(identity)
        core.connections.add(connection)
        core.presence.register(identity, connection.handle)
        return connection
    return _connect


@pytest.fixture
def group_room():
    return RoomKey.group(101)
