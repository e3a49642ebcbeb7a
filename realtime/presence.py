from typing import Dict, Iterable, Optional

from logging_config import get_logger
from realtime.models import Identity

logger = get_logger(__name__)


class PresenceTable:
    """Maps a user id to the handle of that user's current live connection.

    A newer connection for the same user silently takes over the entry; the
    older connection stays open but is no longer discoverable here.
    """

    def __init__(self):
        self._entries: Dict[int, str] = {}

    def register(self, identity: Identity, handle: str):
        previous = self._entries.get(identity.id)
        self._entries[identity.id] = handle
        if previous and previous != handle:
            logger.info(f"Presence for user {identity.id} moved from {previous} to {handle}")
        else:
            logger.debug(f"Presence registered for user {identity.id}: {handle}")

    def lookup(self, identity_id: int) -> Optional[str]:
        return self._entries.get(identity_id)

    def unregister(self, identity: Identity, handle: str) -> bool:
        # A stale disconnect must not clobber a newer connection's entry
        if self._entries.get(identity.id) != handle:
            logger.debug(f"Skipping stale presence unregister for user {identity.id}: {handle}")
            return False
        del self._entries[identity.id]
        logger.debug(f"Presence removed for user {identity.id}")
        return True

    def query(self, identity_ids: Iterable[int]) -> Dict[int, Optional[str]]:
        return {identity_id: self._entries.get(identity_id) for identity_id in identity_ids}

    def __len__(self) -> int:
        return len(self._entries)
