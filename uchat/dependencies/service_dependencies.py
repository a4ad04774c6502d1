from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from uchat.utils.connection_registry import ConnectionRegistry

from uchat.database.session import get_db_session
from uchat.services.auth_service import AuthService
from uchat.services.room_service import RoomService
from uchat.services.chat_service import ChatService
from uchat.services.user_service import UserService

def get_connection_registry(connection: HTTPConnection) -> ConnectionRegistry:
    """
    Dependency that provides the ConnectionRegistry owned by the running application.
    Works for both HTTP requests and WebSocket connections.
    """
    return connection.app.state.connection_registry

def get_auth_service(db: AsyncSession = Depends(get_db_session)) -> AuthService:
    """
    Dependency that provides an instance of AuthService with an active database session.
    """
    return AuthService(db)

def get_room_service(db: AsyncSession = Depends(get_db_session)) -> RoomService:
    """
    Dependency that provides an instance of RoomService with an active database session.
    """
    return RoomService(db)

def get_chat_service(
    room_service: RoomService = Depends(get_room_service),
    db: AsyncSession = Depends(get_db_session),
    registry: ConnectionRegistry = Depends(get_connection_registry),
) -> ChatService:
    """
    Dependency that provides an instance of ChatService with required dependencies.
    """
    return ChatService(
        room_service=room_service, 
        db=db, 
        registry=registry,
    )

def get_user_service(db: AsyncSession = Depends(get_db_session)) -> UserService:
    """
    Dependency that provides an instance of UserService with an active database session.
    """
    return UserService(db)
