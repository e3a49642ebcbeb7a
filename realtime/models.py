from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class RoomKind(str, Enum):
    GROUP = "group"
    DIRECT = "dm"


@dataclass(frozen=True)
class Identity:
    id: int
    username: str

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username}


@dataclass(frozen=True)
class RoomKey:
    kind: RoomKind
    id: int

    @classmethod
    def group(cls, group_id: int) -> "RoomKey":
        return cls(RoomKind.GROUP, int(group_id))

    @classmethod
    def direct(cls, dm_id: int) -> "RoomKey":
        return cls(RoomKind.DIRECT, int(dm_id))

    @property
    def message_event(self) -> str:
        """Name of the push event carrying this room's messages."""
        return "group-message" if self.kind is RoomKind.GROUP else "dm-message"

    def __str__(self) -> str:
        return f"{self.kind.value}_{self.id}"


def parse_id(value: Any) -> Optional[int]:
    """Coerce a client supplied numeric id to a positive int, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            return None
    try:
        parsed = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return parsed if parsed > 0 else None


def message_record(room_key: RoomKey, message_id: int, sender_id: Optional[int], sender_name: Optional[str],
                   content: str, created_at: str) -> dict:
    """Build the wire/storage shape of a chat message for ``room_key``."""
    if room_key.kind is RoomKind.GROUP:
        return {
            "id": message_id,
            "groupId": room_key.id,
            "user_id": sender_id,
            "username": sender_name,
            "content": content,
            "created_at": created_at,
        }
    return {
        "id": message_id,
        "dmId": room_key.id,
        "sender_id": sender_id,
        "sender_username": sender_name,
        "content": content,
        "created_at": created_at,
    }
