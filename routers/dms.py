from fastapi import APIRouter, Depends, HTTPException

from constants import HISTORY_LIMIT
from dependencies import current_identity, get_store
from logging_config import get_logger
from realtime.models import Identity, RoomKey
from schemas.chat import DirectMessagesResponse, DmResponse, DmsResponse, OpenDmRequest

logger = get_logger(__name__)

dms_router = APIRouter(prefix="/dms", tags=["dms"])


@dms_router.post("", response_model=DmResponse)
async def open_dm(body: OpenDmRequest, identity: Identity = Depends(current_identity), store=Depends(get_store)):
    if body.friend_id == identity.id:
        raise HTTPException(status_code=400, detail="Cannot message yourself")
    other = await store.get_user(body.friend_id)
    if not other:
        raise HTTPException(status_code=404, detail="User not found")
    dm_id = await store.open_dm(identity.id, other["id"])
    logger.info(f"User {identity.id} opened direct channel {dm_id} with user {other['id']}")
    return DmResponse(dm={"id": dm_id, "user": other})


@dms_router.get("", response_model=DmsResponse)
async def my_dms(identity: Identity = Depends(current_identity), store=Depends(get_store)):
    return DmsResponse(dms=await store.list_user_dms(identity.id))


@dms_router.get("/{dm_id}/messages", response_model=DirectMessagesResponse)
async def dm_messages(dm_id: int, identity: Identity = Depends(current_identity), store=Depends(get_store)):
    messages = await store.list_messages(RoomKey.direct(dm_id), limit=HISTORY_LIMIT)
    return DirectMessagesResponse(messages=messages)
