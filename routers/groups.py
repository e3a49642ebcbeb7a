from fastapi import APIRouter, Depends, HTTPException

from constants import HISTORY_LIMIT
from dependencies import current_identity, get_core, get_store
from logging_config import get_logger
from realtime.core import ChatCore
from realtime.errors import RoomFull
from realtime.models import Identity, RoomKey
from schemas.chat import (
    CreateGroupRequest,
    GroupMessagesResponse,
    GroupResponse,
    GroupsResponse,
    JoinGroupRequest,
    SuccessResponse,
)

logger = get_logger(__name__)

groups_router = APIRouter(prefix="/groups", tags=["groups"])


@groups_router.post("", response_model=GroupResponse)
async def create_group(body: CreateGroupRequest, identity: Identity = Depends(current_identity),
                       store=Depends(get_store)):
    name = (body.name or "").strip() or "Group"
    group = await store.create_group(name, identity.id)
    return GroupResponse(group=group)


@groups_router.post("/join", response_model=SuccessResponse)
async def join_group(body: JoinGroupRequest, identity: Identity = Depends(current_identity),
                     core: ChatCore = Depends(get_core)):
    logger.info(f"Join group request from user {identity.id} for code {body.group_code}")
    group = await core.store.get_group_by_code(body.group_code.strip().upper())
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    try:
        await core.store.add_group_member(group["id"], identity.id, capacity=core.rooms.capacity)
    except RoomFull as e:
        logger.warning(f"Join group failed: group {group['id']} is full")
        raise HTTPException(status_code=400, detail=e.message)
    return SuccessResponse()


@groups_router.get("", response_model=GroupsResponse)
async def my_groups(identity: Identity = Depends(current_identity), store=Depends(get_store)):
    return GroupsResponse(groups=await store.list_user_groups(identity.id))


@groups_router.get("/{group_id}/messages", response_model=GroupMessagesResponse)
async def group_messages(group_id: int, identity: Identity = Depends(current_identity), store=Depends(get_store)):
    messages = await store.list_messages(RoomKey.group(group_id), limit=HISTORY_LIMIT)
    return GroupMessagesResponse(messages=messages)
