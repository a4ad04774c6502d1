from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from uuid import UUID
from datetime import datetime
from enum import Enum
from typing import List, Optional

from uchat.schemas.user import UserSummary

class MemberRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"

class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"

class CreateRoomRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, description="Room name")
    description: str = Field(default="", max_length=200)
    password: str = Field(..., min_length=1, max_length=128, description="Password required to enter the room")
    max_members: Optional[int] = Field(default=None, ge=2, le=500)

class JoinRoomRequest(BaseModel):
    password: Optional[str] = None

class InviteRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)

class RoomSummary(BaseModel):
    """The public view of a room sent with roomJoined; never includes the key."""
    id: UUID
    name: str
    description: str = ""

    class Config:
        from_attributes = True

class RoomResponse(BaseModel):
    id: UUID
    name: str
    description: str = ""
    created_by: UUID
    created_at: datetime
    member_count: int
    max_members: int
    role: MemberRole
    has_access: bool

    class Config:
        alias_generator = to_camel
        populate_by_name = True

class RoomEnvelope(BaseModel):
    success: bool = True
    room: RoomResponse

class RoomListEnvelope(BaseModel):
    success: bool = True
    rooms: List[RoomResponse] = []

class JoinRoomResponse(BaseModel):
    success: bool = True
    message: str
    has_access: bool = True

    class Config:
        alias_generator = to_camel
        populate_by_name = True

class InvitationResponse(BaseModel):
    id: UUID
    invite_code: str
    status: InvitationStatus
    room: RoomSummary
    invited_by: UserSummary
    created_at: datetime
    expires_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True

class InvitationSentResponse(BaseModel):
    success: bool = True
    message: str
    invite_code: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True

class InvitationListEnvelope(BaseModel):
    success: bool = True
    invitations: List[InvitationResponse] = []

class InvitationResolvedResponse(BaseModel):
    success: bool = True
    message: str
    room: Optional[RoomSummary] = None
