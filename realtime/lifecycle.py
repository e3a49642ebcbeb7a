from typing import Optional

from fastapi import WebSocket, status

from logging_config import get_logger
from realtime.connections import Connection, ConnectionRegistry
from realtime.presence import PresenceTable
from realtime.rooms import RoomRegistry

logger = get_logger(__name__)


class ConnectionLifecycle:
    """Opens and closes connections, keeping presence and rooms in step.

    Connecting -> Rejected when the resolver yields no identity, otherwise
    Connecting -> Active -> Closed. A reconnect is a brand new lifecycle.
    """

    def __init__(self, resolver, presence: PresenceTable, rooms: RoomRegistry, connections: ConnectionRegistry):
        self.resolver = resolver
        self.presence = presence
        self.rooms = rooms
        self.connections = connections

    async def open(self, websocket: WebSocket) -> Optional[Connection]:
        identity = await self.resolver.resolve(websocket)
        if identity is None:
            client_host = websocket.client.host if websocket.client else "unknown"
            logger.warning(f"WebSocket connection rejected: no authenticated session from {client_host}")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Unauthorized")
            return None

        await websocket.accept()
        connection = Connection(websocket, identity)
        connection.start()
        self.connections.add(connection)
        self.presence.register(identity, connection.handle)
        logger.info(f"Connection {connection.handle} opened for user {identity.id} ({identity.username})")

        connection.push("connected", {"socketId": connection.handle, "user": identity.to_dict()})
        return connection

    async def close(self, connection: Connection):
        self.presence.unregister(connection.identity, connection.handle)
        left = self.rooms.leave_all(connection.handle)
        self.connections.remove(connection.handle)
        await connection.close()
        logger.info(
            f"Connection {connection.handle} closed for user {connection.identity.id}, "
            f"left {len(left)} room(s)"
        )
