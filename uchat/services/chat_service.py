from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from typing import List, Optional

from uchat.core.config import settings
from uchat.core.encryption import encrypt_message
from uchat.core.log_config import logger
from uchat.schemas.events import EventType
from uchat.services.message_codec import compose_message, decode_message, to_response
from uchat.utils.clock import utcnow
from uchat.utils.connection_registry import ClientConnection, ConnectionRegistry, LiveConnection
from ..models.message import Message
from ..models.room import Room
from ..models.user import User
from ..schemas.message import MessageResponse
from ..schemas.room import RoomSummary
from ..schemas.user import UserSummary
from .room_service import RoomService
from uchat.core.exceptions import (
    InvalidInputException,
    MessageAlreadyEditedException,
    MessageNotFoundException,
    NotInRoomException,
)


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


class ChatService:
    """
    Handles the realtime events of a connection: joining a room, sending
    messages, typing indicators and disconnects, plus the message history
    and edit/delete operations exposed over HTTP.
    """

    def __init__(
        self,
        room_service: RoomService,
        db: AsyncSession,
        registry: ConnectionRegistry,
    ):
        self.room_service = room_service
        self.db = db
        self.registry = registry

    async def _fetch_history(self, room: Room, limit: int, offset: int = 0) -> List[MessageResponse]:
        result = await self.db.execute(
            select(Message)
            .filter(Message.room_id == room.id)
            .order_by(Message.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        messages = result.scalars().all()
        return [decode_message(msg, room.encryption_key) for msg in reversed(messages)]

    async def _set_presence(self, user: User, online: bool):
        user.is_online = online
        user.last_seen = utcnow()
        await self.db.commit()

    async def _announce_departure(self, binding: LiveConnection):
        online = self.registry.online_users(binding.room_id)
        # Another tab of the same user keeps them present in the room.
        if all(u.id != binding.user_id for u in online):
            await self.registry.broadcast(binding.room_id, EventType.USER_LEFT, _dump(binding.user))
        await self.registry.broadcast(
            binding.room_id,
            EventType.ONLINE_USERS,
            [_dump(u) for u in online],
        )

    async def recover(self, user: User) -> None:
        """
        Roll back a failed transaction and reload the connection's user so
        the next event on this connection starts from a clean session.
        """
        user_id = user.id
        try:
            await self.db.rollback()
            await self.db.refresh(user)
        except Exception as e:
            logger.error(f"Session recovery failed for user {user_id}: {e}", exc_info=True)

    def _require_binding(self, connection: ClientConnection) -> LiveConnection:
        binding = self.registry.get(connection)
        if binding is None:
            raise NotInRoomException()
        return binding

    async def join_room(
        self,
        connection: ClientConnection,
        user: User,
        room_id: UUID,
        password: Optional[str] = None,
    ) -> Optional[LiveConnection]:
        """
        Join a room over the realtime connection.

        Access is checked (and granted with the password if needed), the
        connection is bound to the room, the joiner receives roomJoined with
        the recent decrypted history, the rest of the room gets userJoined,
        and everyone in the room gets the new onlineUsers list.

        The user row is re-read first, so a profile change made elsewhere
        since the socket connected shows up in the announcements.

        Events of one connection are handled one after another, so the
        connection can only be closed during a join by the registry shutting
        down; the join is then dropped.

        Returns:
            The new binding, or None if the connection was closed meanwhile
        """
        await self.db.refresh(user)
        room, _ = await self.room_service.join_room(user.id, room_id, password)
        await self._set_presence(user, online=True)
        history = await self._fetch_history(room, settings.message_history_limit)

        if connection.closed:
            logger.info(f"Connection {connection.id} closed while joining room {room_id}; dropping join.")
            if not self.registry.is_user_connected(user.id):
                await self._set_presence(user, online=False)
            return None

        summary = UserSummary.model_validate(user)
        previous = self.registry.bind(
            connection,
            summary,
            room_id=room.id,
            room_name=room.name,
            room_key=room.encryption_key,
        )
        if previous is not None:
            await self._announce_departure(previous)

        await self.registry.send(
            connection,
            EventType.ROOM_JOINED,
            {
                "user": _dump(summary),
                "room": _dump(RoomSummary.model_validate(room)),
                "messages": [_dump(m) for m in history],
            },
        )
        await self.registry.broadcast(room.id, EventType.USER_JOINED, _dump(summary), exclude=connection)
        await self.registry.broadcast(
            room.id,
            EventType.ONLINE_USERS,
            [_dump(u) for u in self.registry.online_users(room.id)],
        )

        logger.info(f"User {user.username} joined room '{room.name}' ({room.id}) on connection {connection.id}")
        return self.registry.get(connection)

    async def send_message(self, connection: ClientConnection, user: User, text: str) -> MessageResponse:
        """
        Encrypt, store and broadcast a message to the connection's room,
        sender included. The sender snapshot is taken from the user row as
        it is now, not as it was when the socket connected.
        """
        binding = self._require_binding(connection)

        text = (text or "").strip()
        if not text:
            raise InvalidInputException(detail="Message text is required")
        if len(text) > settings.max_message_length:
            raise InvalidInputException(
                detail=f"Message is longer than {settings.max_message_length} characters"
            )

        await self.db.refresh(user)
        binding.user = UserSummary.model_validate(user)

        message = compose_message(
            user,
            text,
            room_id=binding.room_id,
            room_name=binding.room_name,
            room_key=binding.room_key,
        )
        self.db.add(message)
        await self.db.commit()

        response = to_response(message, text)
        await self.registry.broadcast(binding.room_id, EventType.NEW_MESSAGE, _dump(response))
        return response

    async def set_typing(self, connection: ClientConnection, is_typing: bool) -> None:
        """Relay a typing flag to everyone else in the room. Nothing is stored."""
        binding = self._require_binding(connection)
        await self.registry.broadcast(
            binding.room_id,
            EventType.USER_TYPING,
            {"user": _dump(binding.user), "isTyping": bool(is_typing)},
            exclude=connection,
        )

    async def disconnect(self, connection: ClientConnection) -> None:
        """
        Release a connection. Safe to call more than once and on connections
        that never joined a room; it never raises.
        """
        connection.closed = True
        binding = self.registry.unbind(connection)
        if binding is None:
            return

        try:
            if not self.registry.is_user_connected(binding.user_id):
                user = await self.db.get(User, binding.user_id)
                if user is not None:
                    await self._set_presence(user, online=False)
        except Exception as e:
            logger.error(f"Failed to record presence for user {binding.user_id}: {e}", exc_info=True)
            try:
                await self.db.rollback()
            except Exception:
                logger.debug("Rollback after presence failure also failed.", exc_info=True)

        try:
            await self._announce_departure(binding)
        except Exception as e:
            logger.error(f"Failed to announce departure from room {binding.room_id}: {e}", exc_info=True)

        logger.info(f"Connection {connection.id} of user {binding.user.username} left room {binding.room_id}")

    async def get_room_messages(
        self,
        user_id: UUID,
        room_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> List[MessageResponse]:
        """
        A page of decrypted room history, oldest first, for members with access.
        """
        room = await self.room_service.get_accessible_room(user_id, room_id)
        return await self._fetch_history(room, limit, offset)

    async def _get_own_message(self, user_id: UUID, message_id: UUID) -> Message:
        result = await self.db.execute(
            select(Message).filter(
                and_(
                    Message.id == message_id,
                    Message.sender_id == user_id
                )
            )
        )
        message = result.scalar_one_or_none()
        if not message:
            raise MessageNotFoundException(detail="Message not found or unauthorized")
        return message

    async def edit_message(self, user_id: UUID, message_id: UUID, text: str) -> MessageResponse:
        """
        Replace the text of one of the user's own messages. A message can be
        edited once; the sender snapshot is left as it was.
        """
        message = await self._get_own_message(user_id, message_id)
        if message.is_edited:
            raise MessageAlreadyEditedException()

        text = (text or "").strip()
        if not text:
            raise InvalidInputException(detail="Message text is required")

        room = await self.room_service.get_accessible_room(user_id, message.room_id)
        message.content = text
        message.encrypted_content = encrypt_message(text, room.encryption_key)
        message.is_edited = True
        message.edited_at = utcnow()
        await self.db.commit()

        response = to_response(message, text)
        await self.registry.broadcast(room.id, EventType.MESSAGE_EDITED, _dump(response))
        return response

    async def delete_message(self, user_id: UUID, message_id: UUID) -> None:
        """Delete one of the user's own messages."""
        message = await self._get_own_message(user_id, message_id)
        room_id = message.room_id
        await self.db.delete(message)
        await self.db.commit()

        await self.registry.broadcast(room_id, EventType.MESSAGE_DELETED, {"id": str(message_id)})
