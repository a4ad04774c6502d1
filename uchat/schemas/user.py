from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from uchat.schemas.auth import COLOR_PATTERN

class UserSummary(BaseModel):
    """Identity shown to other room members."""
    id: UUID
    username: str
    display_name: str
    avatar: Optional[str] = None
    color: Optional[str] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True

class UserProfileResponse(UserSummary):
    email: str
    is_online: bool = False
    last_seen: Optional[datetime] = None

class UserListEnvelope(BaseModel):
    success: bool = True
    users: List[UserProfileResponse] = []

class UpdateProfileRequest(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=3, max_length=50)
    avatar: Optional[str] = Field(default=None, max_length=255)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
