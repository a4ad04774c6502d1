from uuid import UUID

from uchat.core.encryption import DecryptionError, decrypt_message, encrypt_message
from uchat.core.log_config import logger
from uchat.models.message import Message
from uchat.models.user import User
from uchat.schemas.message import (
    DECRYPTION_PLACEHOLDER,
    MessageResponse,
    MessageSender,
    MessageType,
)
from uchat.utils.clock import as_utc


def compose_message(
    sender: User,
    text: str,
    room_id: UUID,
    room_name: str,
    room_key: str,
    message_type: MessageType = MessageType.TEXT,
) -> Message:
    """
    Build an encrypted message for a room, capturing the sender's current
    name, avatar and color. The snapshot is never refreshed afterwards.
    """
    return Message(
        content=text,
        encrypted_content=encrypt_message(text, room_key),
        message_type=message_type,
        sender_id=sender.id,
        sender_name=sender.display_name,
        sender_avatar=sender.avatar,
        sender_color=sender.color,
        room_id=room_id,
        room_name=room_name,
    )


def to_response(message: Message, text: str) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        text=text,
        user=MessageSender(
            id=message.sender_id,
            name=message.sender_name,
            avatar=message.sender_avatar,
            color=message.sender_color,
        ),
        timestamp=as_utc(message.created_at),
        edited=bool(message.is_edited),
        message_type=message.message_type,
    )


def decode_message(message: Message, room_key: str) -> MessageResponse:
    """
    Decrypt a stored message for display. A message that fails to decrypt
    becomes a system placeholder instead of failing the whole page.
    """
    try:
        text = decrypt_message(message.encrypted_content, room_key)
    except DecryptionError as e:
        logger.warning(f"Message {message.id} in room {message.room_id} could not be decrypted: {e}")
        response = to_response(message, DECRYPTION_PLACEHOLDER)
        response.message_type = MessageType.SYSTEM
        return response
    return to_response(message, text)
