from typing import Optional

from logging_config import get_logger
from realtime.connections import ConnectionRegistry
from realtime.errors import InvalidMessage, StorageError
from realtime.models import Identity, RoomKey, message_record
from realtime.rooms import RoomRegistry

logger = get_logger(__name__)


class MessageFanout:
    """Persists a chat message, then pushes it to every connection in the room."""

    def __init__(self, store, rooms: RoomRegistry, connections: ConnectionRegistry):
        self.store = store
        self.rooms = rooms
        self.connections = connections

    async def send(self, room_key: Optional[RoomKey], sender: Identity, content) -> dict:
        if room_key is None or not isinstance(content, str) or not content:
            raise InvalidMessage()

        try:
            stored = await self.store.insert_message(room_key, sender.id, sender.username, content)
        except StorageError:
            logger.error(f"Message from user {sender.id} to room {room_key} was not stored, skipping broadcast")
            raise

        message = message_record(room_key, stored["id"], sender.id, sender.username, content, stored["created_at"])

        # Enqueue to every member before yielding so rooms see store order
        members = self.rooms.members_of(room_key)
        delivered = sum(
            1 for handle in members if self.connections.deliver(handle, room_key.message_event, message)
        )
        logger.debug(f"Message {message['id']} broadcast to {delivered}/{len(members)} connections in room {room_key}")
        return message
