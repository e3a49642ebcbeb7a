from typing import Any, Awaitable, Callable, Dict, Optional, Type

from pydantic import BaseModel, ValidationError

from logging_config import get_logger
from realtime.core import ChatCore
from realtime.errors import ChatError, InvalidMessage
from realtime.models import RoomKey, parse_id
from schemas.events import (
    AnswerCallRequest,
    CallUserRequest,
    ClientFrame,
    IceCandidateRequest,
    PresenceQueryRequest,
    RoomMessageRequest,
)

logger = get_logger(__name__)

Handler = Callable[[Any, Any], Awaitable[Optional[dict]]]


def _parse(model: Type[BaseModel], data: Any):
    if not isinstance(data, dict):
        raise InvalidMessage()
    try:
        return model.model_validate(data)
    except ValidationError:
        raise InvalidMessage()


def _room_key(factory: Callable[[int], RoomKey], value: Any) -> Optional[RoomKey]:
    room_id = parse_id(value)
    return factory(room_id) if room_id is not None else None


class EventDispatcher:
    """Decodes client frames, routes them to ChatCore and sends the ack.

    Errors raised by an operation go back in the ack; they never close the
    connection. Frames without an ack id get no reply.
    """

    def __init__(self, core: ChatCore):
        self.core = core
        self._handlers: Dict[str, Handler] = {
            "join-group": self.join_group,
            "leave-group": self.leave_group,
            "join-dm": self.join_dm,
            "leave-dm": self.leave_dm,
            "group-message": self.group_message,
            "dm-message": self.dm_message,
            "call-user": self.call_user,
            "answer-call": self.answer_call,
            "ice-candidate": self.ice_candidate,
            "query-presence": self.query_presence,
        }

    async def dispatch(self, connection, raw: Any):
        try:
            frame = ClientFrame.model_validate(raw)
        except ValidationError:
            logger.debug(f"Ignoring malformed frame from connection {connection.handle}")
            return

        logger.debug(f"Event {frame.event} from connection {connection.handle}")
        handler = self._handlers.get(frame.event)
        try:
            if handler is None:
                raise InvalidMessage(f"Unknown event: {frame.event}")
            result = await handler(connection, frame.data)
        except ChatError as e:
            logger.debug(f"Event {frame.event} from connection {connection.handle} failed: {e.code.value}")
            result = e.to_ack()

        if frame.ack is not None:
            connection.push("ack", result or {"ok": True}, ack=frame.ack)

    async def _join(self, connection, room_key: Optional[RoomKey]):
        if room_key is None:
            raise InvalidMessage()
        await self.core.join_room(connection, room_key)
        return {"ok": True}

    async def _leave(self, connection, room_key: Optional[RoomKey]):
        if room_key is not None:
            await self.core.leave_room(connection, room_key)
        return {"ok": True}

    async def join_group(self, connection, data):
        return await self._join(connection, _room_key(RoomKey.group, data))

    async def leave_group(self, connection, data):
        return await self._leave(connection, _room_key(RoomKey.group, data))

    async def join_dm(self, connection, data):
        return await self._join(connection, _room_key(RoomKey.direct, data))

    async def leave_dm(self, connection, data):
        return await self._leave(connection, _room_key(RoomKey.direct, data))

    async def group_message(self, connection, data):
        request = _parse(RoomMessageRequest, data)
        message = await self.core.send_message(connection, _room_key(RoomKey.group, request.groupId), request.content)
        return {"ok": True, "id": message["id"]}

    async def dm_message(self, connection, data):
        request = _parse(RoomMessageRequest, data)
        message = await self.core.send_message(connection, _room_key(RoomKey.direct, request.dmId), request.content)
        return {"ok": True, "id": message["id"]}

    async def call_user(self, connection, data):
        request = _parse(CallUserRequest, data)
        self.core.request_call(connection, parse_id(request.toUserId), request.offer)

    async def answer_call(self, connection, data):
        request = _parse(AnswerCallRequest, data)
        self.core.answer_call(connection, request.toSocketId, request.answer)

    async def ice_candidate(self, connection, data):
        request = _parse(IceCandidateRequest, data)
        self.core.send_ice_candidate(connection, request.toSocketId, request.candidate)

    async def query_presence(self, connection, data):
        request = _parse(PresenceQueryRequest, data)
        user_ids = [user_id for user_id in (parse_id(value) for value in request.userIds) if user_id is not None]
        presence = self.core.query_presence(user_ids)
        # JSON object keys are strings
        return {"ok": True, "presence": {str(user_id): handle for user_id, handle in presence.items()}}
