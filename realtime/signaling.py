from typing import Any

from logging_config import get_logger
from realtime.connections import ConnectionRegistry
from realtime.models import Identity
from realtime.presence import PresenceTable

logger = get_logger(__name__)


class SignalingRelay:
    """Blind relay for call setup between two connections.

    No call state is kept: every message names its own target, and the
    offer, answer and candidate payloads are forwarded without inspection.
    Unreachable targets are dropped silently.
    """

    def __init__(self, presence: PresenceTable, connections: ConnectionRegistry):
        self.presence = presence
        self.connections = connections

    def relay_call_request(self, from_identity: Identity, from_handle: str, to_identity_id: Any, offer: Any) -> bool:
        to_handle = self.presence.lookup(to_identity_id) if isinstance(to_identity_id, int) else None
        if to_handle is None:
            logger.debug(f"Call request from user {from_identity.id} dropped: user {to_identity_id} is offline")
            return False
        logger.info(f"Relaying call request from user {from_identity.id} to user {to_identity_id}")
        return self.connections.deliver(to_handle, "incoming-call", {
            "fromUserId": from_identity.id,
            "fromUsername": from_identity.username,
            "offer": offer,
            "fromSocketId": from_handle,
        })

    def relay_call_answer(self, to_handle: Any, answer: Any, from_handle: str) -> bool:
        if not isinstance(to_handle, str):
            return False
        return self.connections.deliver(to_handle, "call-accepted", {
            "answer": answer,
            "fromSocketId": from_handle,
        })

    def relay_ice_candidate(self, to_handle: Any, candidate: Any) -> bool:
        if not isinstance(to_handle, str):
            return False
        return self.connections.deliver(to_handle, "ice-candidate", {"candidate": candidate})
