import functools
import json
import uuid
from datetime import datetime, timezone
from typing import List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from constants import GROUP_CAPACITY, HISTORY_LIMIT, REDIS_URL, SESSION_TTL
from logging_config import get_logger
from realtime.errors import RoomFull, StorageError
from realtime.models import Identity, RoomKey, message_record
from redis_keys import (
    REDIS_DM_KEY,
    REDIS_DM_NEXT_ID,
    REDIS_DM_PAIR_KEY,
    REDIS_FRIENDS_KEY,
    REDIS_GROUP_CODE_KEY,
    REDIS_GROUP_KEY,
    REDIS_GROUP_MEMBERS_KEY,
    REDIS_GROUP_NEXT_ID,
    REDIS_MESSAGE_NEXT_ID,
    REDIS_MESSAGES_KEY,
    REDIS_SESSION_KEY,
    REDIS_USER_CODE_KEY,
    REDIS_USER_DMS_KEY,
    REDIS_USER_GROUPS_KEY,
    REDIS_USER_KEY,
    REDIS_USER_NEXT_ID,
)

logger = get_logger(__name__)


def generate_code() -> str:
    return uuid.uuid4().hex[:8].upper()


def _storage_errors(func):
    """Turn Redis failures into StorageError so callers never see redis types."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except RedisError as e:
            logger.error(f"Redis call {func.__name__} failed: {e}", exc_info=True)
            raise StorageError() from e
    return wrapper


class RedisStore:
    """Persistent store for users, friends, groups, direct channels and messages.

    Every method is a coroutine and raises StorageError when Redis fails.
    """

    def __init__(self, redis_client: aioredis.Redis):
        self.redis_client = redis_client

    @classmethod
    def from_url(cls, url: str = REDIS_URL) -> "RedisStore":
        logger.info(f"Initializing RedisStore for {url.rsplit('@', 1)[-1]}")
        return cls(aioredis.Redis.from_url(url, decode_responses=True))

    @_storage_errors
    async def ping(self) -> bool:
        return await self.redis_client.ping()

    async def close(self):
        await self.redis_client.aclose()

    # Sessions and users are owned by the external auth service. create_session
    # and create_user write the same key layout it does and are used to seed
    # accounts for local runs and tests.

    @_storage_errors
    async def create_session(self, identity: Identity, token: Optional[str] = None, ttl: int = SESSION_TTL) -> str:
        token = token or uuid.uuid4().hex
        key = REDIS_SESSION_KEY.format(token=token)
        await self.redis_client.hset(key, mapping={"user_id": identity.id, "username": identity.username})
        if ttl:
            await self.redis_client.expire(key, ttl)
        logger.debug(f"Session created for user {identity.id}")
        return token

    @_storage_errors
    async def get_session_identity(self, token: str) -> Optional[Identity]:
        session = await self.redis_client.hgetall(REDIS_SESSION_KEY.format(token=token))
        if not session or "user_id" not in session:
            return None
        return Identity(id=int(session["user_id"]), username=session.get("username", ""))

    # Users and friends

    @_storage_errors
    async def create_user(self, username: str, avatar: Optional[str] = None) -> dict:
        user_id = await self.redis_client.incr(REDIS_USER_NEXT_ID)
        code = generate_code()
        user = {"username": username, "code": code}
        if avatar:
            user["avatar"] = avatar
        async with self.redis_client.pipeline(transaction=True) as pipe:
            pipe.hset(REDIS_USER_KEY.format(user_id=user_id), mapping=user)
            pipe.set(REDIS_USER_CODE_KEY.format(code=code), user_id)
            await pipe.execute()
        logger.info(f"User {user_id} ({username}) created")
        return {"id": user_id, "avatar": avatar, **user}

    @_storage_errors
    async def get_user(self, user_id: int) -> Optional[dict]:
        data = await self.redis_client.hgetall(REDIS_USER_KEY.format(user_id=user_id))
        if not data:
            return None
        return {"id": int(user_id), "username": data.get("username"), "code": data.get("code"),
                "avatar": data.get("avatar")}

    @_storage_errors
    async def get_user_by_code(self, code: str) -> Optional[dict]:
        user_id = await self.redis_client.get(REDIS_USER_CODE_KEY.format(code=code))
        if user_id is None:
            return None
        return await self.get_user(int(user_id))

    @_storage_errors
    async def add_friend(self, user_id: int, friend_id: int) -> bool:
        added = await self.redis_client.sadd(REDIS_FRIENDS_KEY.format(user_id=user_id), friend_id)
        return bool(added)

    @_storage_errors
    async def list_friends(self, user_id: int) -> List[dict]:
        friend_ids = await self.redis_client.smembers(REDIS_FRIENDS_KEY.format(user_id=user_id))
        friends = []
        for friend_id in sorted(int(f) for f in friend_ids):
            friend = await self.get_user(friend_id)
            if friend:
                friends.append(friend)
        return friends

    # Groups

    @_storage_errors
    async def create_group(self, name: str, creator_id: int) -> dict:
        group_id = await self.redis_client.incr(REDIS_GROUP_NEXT_ID)
        code = generate_code()
        async with self.redis_client.pipeline(transaction=True) as pipe:
            pipe.hset(REDIS_GROUP_KEY.format(group_id=group_id), mapping={"name": name, "group_code": code})
            pipe.set(REDIS_GROUP_CODE_KEY.format(code=code), group_id)
            pipe.sadd(REDIS_GROUP_MEMBERS_KEY.format(group_id=group_id), creator_id)
            pipe.sadd(REDIS_USER_GROUPS_KEY.format(user_id=creator_id), group_id)
            await pipe.execute()
        logger.info(f"Group {group_id} ({name}) created by user {creator_id}")
        return {"id": group_id, "name": name, "group_code": code}

    @_storage_errors
    async def get_group(self, group_id: int) -> Optional[dict]:
        data = await self.redis_client.hgetall(REDIS_GROUP_KEY.format(group_id=group_id))
        if not data:
            return None
        return {"id": int(group_id), "name": data.get("name"), "group_code": data.get("group_code")}

    @_storage_errors
    async def get_group_by_code(self, code: str) -> Optional[dict]:
        group_id = await self.redis_client.get(REDIS_GROUP_CODE_KEY.format(code=code))
        if group_id is None:
            return None
        return await self.get_group(int(group_id))

    @_storage_errors
    async def count_group_members(self, group_id: int) -> int:
        return await self.redis_client.scard(REDIS_GROUP_MEMBERS_KEY.format(group_id=group_id))

    @_storage_errors
    async def add_group_member(self, group_id: int, user_id: int, capacity: int = GROUP_CAPACITY) -> bool:
        """Persist membership; False if already a member, RoomFull at capacity."""
        members_key = REDIS_GROUP_MEMBERS_KEY.format(group_id=group_id)
        if await self.redis_client.sismember(members_key, user_id):
            return False
        if await self.redis_client.scard(members_key) >= capacity:
            raise RoomFull(f"Group is full ({capacity} max)")
        async with self.redis_client.pipeline(transaction=True) as pipe:
            pipe.sadd(members_key, user_id)
            pipe.sadd(REDIS_USER_GROUPS_KEY.format(user_id=user_id), group_id)
            await pipe.execute()
        logger.info(f"User {user_id} joined group {group_id}")
        return True

    @_storage_errors
    async def list_user_groups(self, user_id: int) -> List[dict]:
        group_ids = await self.redis_client.smembers(REDIS_USER_GROUPS_KEY.format(user_id=user_id))
        groups = []
        for group_id in sorted(int(g) for g in group_ids):
            group = await self.get_group(group_id)
            if group:
                groups.append(group)
        return groups

    # Direct channels

    @_storage_errors
    async def open_dm(self, user_id: int, other_id: int) -> int:
        """Return the direct channel between two users, creating it once."""
        user_a, user_b = sorted((int(user_id), int(other_id)))
        pair_key = REDIS_DM_PAIR_KEY.format(user_a=user_a, user_b=user_b)
        existing = await self.redis_client.get(pair_key)
        if existing is not None:
            return int(existing)

        dm_id = await self.redis_client.incr(REDIS_DM_NEXT_ID)
        if not await self.redis_client.set(pair_key, dm_id, nx=True):
            # Lost a race with the other participant; use theirs
            return int(await self.redis_client.get(pair_key))
        async with self.redis_client.pipeline(transaction=True) as pipe:
            pipe.hset(REDIS_DM_KEY.format(dm_id=dm_id), mapping={"user_a": user_a, "user_b": user_b})
            pipe.sadd(REDIS_USER_DMS_KEY.format(user_id=user_a), dm_id)
            pipe.sadd(REDIS_USER_DMS_KEY.format(user_id=user_b), dm_id)
            await pipe.execute()
        logger.info(f"Direct channel {dm_id} opened between users {user_a} and {user_b}")
        return dm_id

    @_storage_errors
    async def list_user_dms(self, user_id: int) -> List[dict]:
        dm_ids = await self.redis_client.smembers(REDIS_USER_DMS_KEY.format(user_id=user_id))
        dms = []
        for dm_id in sorted(int(d) for d in dm_ids):
            data = await self.redis_client.hgetall(REDIS_DM_KEY.format(dm_id=dm_id))
            if not data:
                continue
            user_a, user_b = int(data["user_a"]), int(data["user_b"])
            other = await self.get_user(user_b if user_a == int(user_id) else user_a)
            if other:
                dms.append({"id": dm_id, "user": other})
        return dms

    # Messages

    @_storage_errors
    async def insert_message(self, room_key: RoomKey, sender_id: Optional[int], sender_name: Optional[str],
                             content: str) -> dict:
        kind = room_key.kind.value
        message_id = await self.redis_client.incr(REDIS_MESSAGE_NEXT_ID.format(kind=kind))
        created_at = datetime.now(timezone.utc).isoformat()
        record = message_record(room_key, message_id, sender_id, sender_name, content, created_at)
        await self.redis_client.rpush(REDIS_MESSAGES_KEY.format(kind=kind, room_id=room_key.id), json.dumps(record))
        logger.debug(f"Stored message {message_id} in room {room_key}")
        return {"id": message_id, "created_at": created_at}

    @_storage_errors
    async def list_messages(self, room_key: RoomKey, limit: int = HISTORY_LIMIT) -> List[dict]:
        key = REDIS_MESSAGES_KEY.format(kind=room_key.kind.value, room_id=room_key.id)
        raw = await self.redis_client.lrange(key, -limit, -1)
        messages = []
        for item in raw:
            try:
                messages.append(json.loads(item))
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping unreadable message in room {room_key}: {e}")
        return messages


redis_store = RedisStore.from_url()
