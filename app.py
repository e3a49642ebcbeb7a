from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import json
import os

from auth import SessionIdentityResolver
from backend import redis_store
from constants import CORS_ORIGINS
from logging_config import get_logger, setup_logging
from realtime.core import ChatCore
from realtime.dispatch import EventDispatcher
from realtime.errors import StorageError
from routers.dms import dms_router
from routers.friends import friends_router
from routers.groups import groups_router
from schemas.chat import HealthResponse

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


def create_core(store=redis_store) -> ChatCore:
    return ChatCore(store, SessionIdentityResolver(store))


def create_app(core: Optional[ChatCore] = None) -> FastAPI:
    core = core or create_core()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await core.store.ping()
            logger.info("Store connection verified")
        except StorageError:
            logger.error("Store is unreachable, refusing to start")
            raise
        yield
        await core.store.close()
        logger.info("Store connection closed")

    app = FastAPI(lifespan=lifespan)
    app.state.core = core
    app.state.dispatcher = EventDispatcher(core)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(friends_router)
    app.include_router(groups_router)
    app.include_router(dms_router)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"Storage failure while handling {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"detail": exc.message})

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(status="ok", online=len(core.presence), rooms=len(core.rooms.active_rooms()))

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Realtime endpoint: one connection per client, JSON frames both ways.

        The session token comes from the session cookie or ``?token=``; a
        connection without a valid session is closed with code 1008.
        """
        connection = await core.lifecycle.open(websocket)
        if connection is None:
            return

        dispatcher: EventDispatcher = websocket.app.state.dispatcher
        message_count = 0
        try:
            while True:
                data = await websocket.receive_text()
                message_count += 1
                try:
                    frame = json.loads(data)
                except json.JSONDecodeError:
                    logger.debug(f"Ignoring non-JSON frame #{message_count} from connection {connection.handle}")
                    continue
                await dispatcher.dispatch(connection, frame)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected for connection {connection.handle} after {message_count} frames")
        except Exception as e:
            logger.error(f"WebSocket error for connection {connection.handle}: {e}", exc_info=True)
        finally:
            await core.lifecycle.close(connection)
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket for connection {connection.handle}: {e}")

    logger.info("FastAPI application initialized")
    return app


app = create_app()
