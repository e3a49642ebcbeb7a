from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    UNAUTHORIZED = "unauthorized"
    ROOM_FULL = "room_full"
    INVALID_MESSAGE = "invalid_message"
    STORAGE_ERROR = "storage_error"


class ChatError(Exception):
    """Base class for errors returned to the caller through an ack."""

    code: ErrorCode
    default_message = "Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_ack(self) -> dict:
        return {"error": self.message, "code": self.code.value}


class Unauthorized(ChatError):
    code = ErrorCode.UNAUTHORIZED
    default_message = "Unauthorized"


class RoomFull(ChatError):
    code = ErrorCode.ROOM_FULL
    default_message = "Room is full"


class InvalidMessage(ChatError):
    code = ErrorCode.INVALID_MESSAGE
    default_message = "Invalid"


class StorageError(ChatError):
    code = ErrorCode.STORAGE_ERROR
    default_message = "DB error"
