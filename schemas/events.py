from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional


class ClientFrame(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str = Field(min_length=1)
    data: Any = None
    ack: Optional[int] = None

class RoomMessageRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    groupId: Any = None
    dmId: Any = None
    content: Any = None

class CallUserRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    toUserId: Any = None
    offer: Any = None

class AnswerCallRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    toSocketId: Any = None
    answer: Any = None

class IceCandidateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    toSocketId: Any = None
    candidate: Any = None

class PresenceQueryRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    userIds: List[Any] = Field(default_factory=list)
