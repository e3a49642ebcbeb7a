from typing import Dict, FrozenSet, List, Set

from constants import GROUP_CAPACITY
from logging_config import get_logger
from realtime.errors import RoomFull
from realtime.models import RoomKey, RoomKind

logger = get_logger(__name__)


class RoomRegistry:
    """Live room membership, keyed by room and holding connection handles.

    Membership is per connection: a user with two tabs takes two slots.
    Rooms exist only while they have members.
    """

    def __init__(self, store, capacity: int = GROUP_CAPACITY):
        self.store = store
        self.capacity = capacity
        self._rooms: Dict[RoomKey, Set[str]] = {}

    async def join(self, room_key: RoomKey, handle: str):
        """Add ``handle`` to the room, raising RoomFull for a full group.

        Group rooms are gated both on the persisted member count of the group
        and on the number of connections currently in the room.
        """
        if handle in self._rooms.get(room_key, ()):
            logger.debug(f"Connection {handle} already in room {room_key}")
            return

        if room_key.kind is RoomKind.GROUP:
            persisted_count = await self.store.count_group_members(room_key.id)
            # No suspension point between this check and the add below
            live_count = self.room_count(room_key)
            if persisted_count >= self.capacity or live_count >= self.capacity:
                logger.info(
                    f"Join rejected for {handle}: room {room_key} is full "
                    f"(members={persisted_count}, live={live_count}, capacity={self.capacity})"
                )
                raise RoomFull(f"Group is full ({self.capacity} max)")

        self._rooms.setdefault(room_key, set()).add(handle)
        logger.debug(f"Connection {handle} joined room {room_key} (live: {self.room_count(room_key)})")

    def leave(self, room_key: RoomKey, handle: str) -> bool:
        members = self._rooms.get(room_key)
        if not members or handle not in members:
            return False
        members.discard(handle)
        if not members:
            del self._rooms[room_key]
            logger.debug(f"Room {room_key} is empty, removed")
        else:
            logger.debug(f"Connection {handle} left room {room_key} (live: {len(members)})")
        return True

    def leave_all(self, handle: str) -> List[RoomKey]:
        """Remove ``handle`` from every room it joined; returns those rooms."""
        left = [room_key for room_key, members in self._rooms.items() if handle in members]
        for room_key in left:
            self.leave(room_key, handle)
        return left

    def members_of(self, room_key: RoomKey) -> FrozenSet[str]:
        return frozenset(self._rooms.get(room_key, ()))

    def room_count(self, room_key: RoomKey) -> int:
        return len(self._rooms.get(room_key, ()))

    def active_rooms(self) -> List[RoomKey]:
        return list(self._rooms.keys())
