from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

class EventType(str, Enum):
    # Client -> server
    JOIN_ROOM = "joinRoom"
    SEND_MESSAGE = "sendMessage"
    TYPING = "typing"

    # Server -> client
    ROOM_JOINED = "roomJoined"
    USER_JOINED = "userJoined"
    USER_LEFT = "userLeft"
    ONLINE_USERS = "onlineUsers"
    NEW_MESSAGE = "newMessage"
    MESSAGE_EDITED = "messageEdited"
    MESSAGE_DELETED = "messageDeleted"
    USER_TYPING = "userTyping"
    ERROR = "error"

class InboundEvent(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True

class JoinRoomEvent(InboundEvent):
    room_id: UUID
    password: Optional[str] = None

class SendMessageEvent(InboundEvent):
    text: str = ""

class TypingEvent(InboundEvent):
    is_typing: bool = True

INBOUND_EVENTS = {
    EventType.JOIN_ROOM: JoinRoomEvent,
    EventType.SEND_MESSAGE: SendMessageEvent,
    EventType.TYPING: TypingEvent,
}
