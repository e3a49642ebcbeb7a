from fastapi import HTTPException, Request

from realtime.core import ChatCore
from realtime.models import Identity


def get_core(request: Request) -> ChatCore:
    return request.app.state.core


def get_store(request: Request):
    return request.app.state.core.store


async def current_identity(request: Request) -> Identity:
    identity = await get_core(request).resolver.resolve(request)
    if identity is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return identity
