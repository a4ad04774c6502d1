from enum import Enum
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from uuid import UUID
from datetime import datetime
from typing import List, Optional

class MessageType(str, Enum):
    TEXT = "text"
    SYSTEM = "system"
    INVITATION = "invitation"

DECRYPTION_PLACEHOLDER = "[Message could not be decrypted]"

class MessageSender(BaseModel):
    """Sender identity as it was when the message was sent."""
    id: UUID
    name: str
    avatar: Optional[str] = None
    color: Optional[str] = None

class MessageResponse(BaseModel):
    id: UUID
    text: str
    user: MessageSender
    timestamp: datetime
    edited: bool = False
    message_type: MessageType = MessageType.TEXT

    class Config:
        alias_generator = to_camel
        populate_by_name = True

class MessagePageEnvelope(BaseModel):
    success: bool = True
    messages: List[MessageResponse] = []

class MessageEnvelope(BaseModel):
    success: bool = True
    message: MessageResponse

class EditMessageRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)
