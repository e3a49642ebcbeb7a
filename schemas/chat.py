from pydantic import BaseModel
from typing import List, Optional


class UserOut(BaseModel):
    id: int
    username: str
    code: Optional[str] = None
    avatar: Optional[str] = None

class MeResponse(BaseModel):
    user: UserOut
    friends: List[UserOut]

class AddFriendRequest(BaseModel):
    friend_code: str

class OnlineFriend(UserOut):
    socketId: Optional[str] = None

class OnlineFriendsResponse(BaseModel):
    friends: List[OnlineFriend]

class CreateGroupRequest(BaseModel):
    name: Optional[str] = None

class JoinGroupRequest(BaseModel):
    group_code: str

class GroupOut(BaseModel):
    id: int
    name: str
    group_code: str

class GroupResponse(BaseModel):
    group: GroupOut

class GroupsResponse(BaseModel):
    groups: List[GroupOut]

class GroupMessageOut(BaseModel):
    id: int
    groupId: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    content: str
    created_at: str

class GroupMessagesResponse(BaseModel):
    messages: List[GroupMessageOut]

class OpenDmRequest(BaseModel):
    friend_id: int

class DmOut(BaseModel):
    id: int
    user: UserOut

class DmResponse(BaseModel):
    dm: DmOut

class DmsResponse(BaseModel):
    dms: List[DmOut]

class DirectMessageOut(BaseModel):
    id: int
    dmId: int
    sender_id: Optional[int] = None
    sender_username: Optional[str] = None
    content: str
    created_at: str

class DirectMessagesResponse(BaseModel):
    messages: List[DirectMessageOut]

class SuccessResponse(BaseModel):
    success: bool = True

class HealthResponse(BaseModel):
    status: str
    online: int
    rooms: int
