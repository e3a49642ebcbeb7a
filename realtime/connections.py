import asyncio
import uuid
from typing import Any, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from constants import OUTBOUND_QUEUE_SIZE
from logging_config import get_logger
from realtime.models import Identity

logger = get_logger(__name__)


class Connection:
    """One live WebSocket with an outbound queue drained by a writer task.

    ``push`` only enqueues, so sending to many connections never waits on a
    slow peer and frames reach each peer in the order they were pushed.
    """

    def __init__(self, websocket: WebSocket, identity: Identity, queue_size: int = OUTBOUND_QUEUE_SIZE):
        self.handle = uuid.uuid4().hex
        self.websocket = websocket
        self.identity = identity
        self.closed = False
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._writer: Optional[asyncio.Task] = None

    def start(self):
        self._writer = asyncio.create_task(self._drain(), name=f"writer-{self.handle}")

    def push(self, event: str, data: Any, ack: Optional[int] = None) -> bool:
        if self.closed:
            return False
        frame = {"event": event, "data": data}
        if ack is not None:
            frame["ack"] = ack
        try:
            self._outbox.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full for connection {self.handle}, dropping {event}")
            return False
        return True

    async def _drain(self):
        try:
            while True:
                frame = await self._outbox.get()
                await self.websocket.send_json(frame)
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug(f"Writer for connection {self.handle} stopped: {e}")
        finally:
            self.closed = True

    async def close(self):
        self.closed = True
        if self._writer is not None and not self._writer.done():
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass

    def __repr__(self) -> str:
        return f"<Connection {self.handle} user={self.identity.id}>"


class ConnectionRegistry:
    """Every live connection of this process, by handle."""

    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def add(self, connection: Connection):
        self._connections[connection.handle] = connection

    def remove(self, handle: str) -> Optional[Connection]:
        return self._connections.pop(handle, None)

    def get(self, handle: str) -> Optional[Connection]:
        return self._connections.get(handle)

    def deliver(self, handle: str, event: str, data: Any) -> bool:
        """Push to one handle; a missing or closed target is not an error."""
        connection = self._connections.get(handle)
        if connection is None:
            logger.debug(f"Dropping {event} for unknown connection {handle}")
            return False
        return connection.push(event, data)

    def __len__(self) -> int:
        return len(self._connections)
