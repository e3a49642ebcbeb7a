from typing import Any, Dict, Iterable, Optional

from constants import GROUP_CAPACITY
from realtime.connections import ConnectionRegistry
from realtime.fanout import MessageFanout
from realtime.lifecycle import ConnectionLifecycle
from realtime.models import RoomKey
from realtime.presence import PresenceTable
from realtime.rooms import RoomRegistry
from realtime.signaling import SignalingRelay


class ChatCore:
    """Owns the process-wide realtime state and exposes the client operations.

    Every operation takes the calling connection (anything with ``handle``
    and ``identity``). State lives for the lifetime of the process and is
    only ever touched from the event loop, so nothing here locks.
    """

    def __init__(self, store, resolver, capacity: int = GROUP_CAPACITY):
        self.store = store
        self.resolver = resolver
        self.presence = PresenceTable()
        self.connections = ConnectionRegistry()
        self.rooms = RoomRegistry(store, capacity=capacity)
        self.fanout = MessageFanout(store, self.rooms, self.connections)
        self.relay = SignalingRelay(self.presence, self.connections)
        self.lifecycle = ConnectionLifecycle(resolver, self.presence, self.rooms, self.connections)

    async def join_room(self, connection, room_key: RoomKey):
        await self.rooms.join(room_key, connection.handle)

    async def leave_room(self, connection, room_key: RoomKey):
        self.rooms.leave(room_key, connection.handle)

    async def send_message(self, connection, room_key: Optional[RoomKey], content: Any) -> dict:
        return await self.fanout.send(room_key, connection.identity, content)

    def request_call(self, connection, target_identity_id: Any, offer: Any):
        self.relay.relay_call_request(connection.identity, connection.handle, target_identity_id, offer)

    def answer_call(self, connection, target_handle: Any, answer: Any):
        self.relay.relay_call_answer(target_handle, answer, connection.handle)

    def send_ice_candidate(self, connection, target_handle: Any, candidate: Any):
        self.relay.relay_ice_candidate(target_handle, candidate)

    def query_presence(self, identity_ids: Iterable[int]) -> Dict[int, Optional[str]]:
        return self.presence.query(identity_ids)
