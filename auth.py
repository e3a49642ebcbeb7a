from typing import Optional

from starlette.requests import HTTPConnection

from constants import SESSION_COOKIE_NAME
from logging_config import get_logger
from realtime.errors import StorageError
from realtime.models import Identity

logger = get_logger(__name__)


class SessionIdentityResolver:
    """Resolves a request or WebSocket to the user of its session.

    Sessions are issued by the auth service; this only looks them up. The
    token is read from the ``Authorization: Bearer`` header, the session
    cookie or the ``token`` query parameter, in that order.
    """

    def __init__(self, store, cookie_name: str = SESSION_COOKIE_NAME):
        self.store = store
        self.cookie_name = cookie_name

    def extract_token(self, connection: HTTPConnection) -> Optional[str]:
        authorization = connection.headers.get("authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return connection.cookies.get(self.cookie_name) or connection.query_params.get("token") or None

    async def resolve(self, connection: HTTPConnection) -> Optional[Identity]:
        token = self.extract_token(connection)
        if not token:
            return None
        try:
            return await self.store.get_session_identity(token)
        except StorageError:
            logger.error("Session lookup failed, treating connection as unauthenticated")
            return None
