import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set
from uuid import UUID, uuid4

from fastapi import WebSocket

from uchat.core.log_config import logger
from uchat.schemas.events import EventType
from uchat.schemas.user import UserSummary


def encode_event(event: EventType, data: Any) -> str:
    """Serialises an outbound frame as {"type": ..., "data": ...}."""
    return json.dumps({"type": event.value, "data": data}, default=str)


class ClientConnection:
    """One accepted WebSocket. The id is what the registry indexes on."""

    def __init__(self, websocket: WebSocket):
        self.id = uuid4().hex
        self.websocket = websocket
        self.closed = False

    async def send_text(self, message: str):
        await self.websocket.send_text(message)

    async def close(self, code: int = 1000):
        self.closed = True
        await self.websocket.close(code=code)

    def __repr__(self):
        return f"<ClientConnection(id={self.id}, closed={self.closed})>"


@dataclass
class LiveConnection:
    """A connection's binding to the user it authenticated as and the room it joined."""
    connection: ClientConnection
    user: UserSummary
    room_id: UUID
    room_name: str
    room_key: str

    @property
    def user_id(self) -> UUID:
        return self.user.id


class ConnectionRegistry:
    """
    In-memory index of live connections and the room each one is bound to.

    Two maps are kept in step: connection id -> LiveConnection, and
    room id -> set of connection ids. Every connection in a room's set has a
    binding naming that room and vice versa. Handlers run one at a time on
    the event loop and the mutating methods never await, so each update is
    atomic with respect to other handlers.

    One instance is created per process in the application lifespan.
    """

    def __init__(self):
        self._bindings: Dict[str, LiveConnection] = {}
        self._rooms: Dict[UUID, Set[str]] = {}

    def bind(
        self,
        connection: ClientConnection,
        user: UserSummary,
        room_id: UUID,
        room_name: str,
        room_key: str,
    ) -> Optional[LiveConnection]:
        """
        Binds the connection to a room. A connection lives in at most one
        room, so an existing binding elsewhere is dropped first.

        Returns:
            The previous binding if the connection moved from another room
        """
        previous = self._bindings.get(connection.id)
        if previous is not None and previous.room_id != room_id:
            self._discard_from_room(previous.room_id, connection.id)
        else:
            previous = None

        self._bindings[connection.id] = LiveConnection(
            connection=connection,
            user=user,
            room_id=room_id,
            room_name=room_name,
            room_key=room_key,
        )
        self._rooms.setdefault(room_id, set()).add(connection.id)
        return previous

    def unbind(self, connection: ClientConnection) -> Optional[LiveConnection]:
        """Removes the connection from both maps. Safe to call repeatedly."""
        binding = self._bindings.pop(connection.id, None)
        if binding is not None:
            self._discard_from_room(binding.room_id, connection.id)
        return binding

    def _discard_from_room(self, room_id: UUID, connection_id: str):
        members = self._rooms.get(room_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[room_id]

    def get(self, connection: ClientConnection) -> Optional[LiveConnection]:
        return self._bindings.get(connection.id)

    def connections_in_room(self, room_id: UUID) -> List[LiveConnection]:
        """A snapshot of the room's bindings at call time."""
        return [self._bindings[cid] for cid in self._rooms.get(room_id, ())]

    def online_users(self, room_id: UUID) -> List[UserSummary]:
        """Distinct users with at least one live connection in the room."""
        seen = {}
        for binding in self.connections_in_room(room_id):
            seen.setdefault(binding.user_id, binding.user)
        return list(seen.values())

    def is_user_connected(self, user_id: UUID) -> bool:
        return any(b.user_id == user_id for b in self._bindings.values())

    def active_rooms(self) -> Set[UUID]:
        return set(self._rooms)

    def __len__(self) -> int:
        return len(self._bindings)

    async def send(self, connection: ClientConnection, event: EventType, data: Any) -> bool:
        """Sends one event to a single connection."""
        return await self._deliver(connection, encode_event(event, data))

    async def broadcast(
        self,
        room_id: UUID,
        event: EventType,
        data: Any,
        exclude: Optional[ClientConnection] = None,
    ) -> int:
        """
        Fans an event out to every connection bound to the room when the call
        is made. Connections that join while the sends are in flight do not
        receive it. Delivery is fire-and-forget.

        Returns:
            The number of connections the event was delivered to
        """
        message = encode_event(event, data)
        targets = [
            b.connection for b in self.connections_in_room(room_id)
            if exclude is None or b.connection.id != exclude.id
        ]
        if not targets:
            return 0
        results = await asyncio.gather(*(self._deliver(c, message) for c in targets))
        return sum(results)

    async def _deliver(self, connection: ClientConnection, message: str) -> bool:
        if connection.closed:
            return False
        try:
            await connection.send_text(message)
            return True
        except Exception as e:
            logger.debug(f"Dropping frame for connection {connection.id}: {e}")
            return False

    async def close(self):
        """Closes every live connection. Called once at shutdown."""
        connections = [b.connection for b in self._bindings.values()]
        self._bindings.clear()
        self._rooms.clear()
        for connection in connections:
            try:
                await connection.close(code=1001)
            except Exception as e:
                logger.debug(f"Error closing connection {connection.id}: {e}")
        logger.info(f"Connection registry closed ({len(connections)} connections).")
