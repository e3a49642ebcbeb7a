from fastapi import APIRouter, Depends, HTTPException

from dependencies import current_identity, get_core, get_store
from logging_config import get_logger
from realtime.core import ChatCore
from realtime.models import Identity
from schemas.chat import AddFriendRequest, MeResponse, OnlineFriendsResponse, SuccessResponse

logger = get_logger(__name__)

friends_router = APIRouter(tags=["friends"])


@friends_router.get("/me", response_model=MeResponse)
async def get_me(identity: Identity = Depends(current_identity), store=Depends(get_store)):
    user = await store.get_user(identity.id)
    if not user:
        logger.warning(f"Session user {identity.id} has no user record")
        raise HTTPException(status_code=404, detail="User not found")
    friends = await store.list_friends(identity.id)
    return MeResponse(user=user, friends=friends)


@friends_router.post("/friends", response_model=SuccessResponse)
async def add_friend(body: AddFriendRequest, identity: Identity = Depends(current_identity), store=Depends(get_store)):
    logger.info(f"Add friend request from user {identity.id} for code {body.friend_code}")
    friend = await store.get_user_by_code(body.friend_code.strip().upper())
    if not friend:
        raise HTTPException(status_code=404, detail="Friend not found")
    if friend["id"] == identity.id:
        raise HTTPException(status_code=400, detail="Cannot add yourself")
    await store.add_friend(identity.id, friend["id"])
    return SuccessResponse()


@friends_router.get("/friends/online", response_model=OnlineFriendsResponse)
async def online_friends(identity: Identity = Depends(current_identity), core: ChatCore = Depends(get_core)):
    """List friends along with the socket id of their live connection, if any."""
    friends = await core.store.list_friends(identity.id)
    presence = core.query_presence(friend["id"] for friend in friends)
    return OnlineFriendsResponse(friends=[{**friend, "socketId": presence[friend["id"]]} for friend in friends])
