import json
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from uchat.models.base import Base
from uchat.models.room import Room  # noqa: F401
from uchat.models.user import User
from uchat.core.security import create_access_token, hash_password
from uchat.schemas.room import CreateRoomRequest
from uchat.services.chat_service import ChatService
from uchat.services.room_service import RoomService
from uchat.utils.connection_registry import ConnectionRegistry

DATABASE_URL = "sqlite+aiosqlite:///:memory:"
ROOM_PASSWORD = "secret123"


class FakeConnection:
    """Stands in for ClientConnection and records every frame sent to it."""

    _counter = 0

    def __init__(self, fail_sends: bool = False):
        FakeConnection._counter += 1
        self.id = f"fake-{FakeConnection._counter}"
        self.closed = False
        self.fail_sends = fail_sends
        self.frames = []

    async def send_text(self, message: str):
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.frames.append(json.loads(message))

    async def close(self, code: int = 1000):
        self.closed = True

    def events(self, event_type: str):
        return [f["data"] for f in self.frames if f["type"] == event_type]

    def types(self):
        return [f["type"] for f in self.frames]


async def make_user(session, username, display_name=None, password="password123", color=None):
    user = User(
        username=username,
        display_name=display_name or username.title(),
        email=f"{username}@example.com",
        color=color,
        hashed_password=hash_password(password)
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def async_session():
    engine = create_async_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session_factory = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with async_session_factory() as session:
        yield session
    await engine.dispose()

@pytest.fixture
def test_db(async_session):
    return async_session

@pytest.fixture
async def test_user(async_session):
    return await make_user(async_session, "testuser", display_name="Test User")

@pytest.fixture
async def second_user(async_session):
    return await make_user(async_session, "bob", display_name="Bob", color="#3366ff")

@pytest.fixture
async def third_user(async_session):
    return await make_user(async_session, "carol", display_name="Carol")

@pytest.fixture
def test_token(test_user):
    return create_access_token({"user_id": str(test_user.id)})

@pytest.fixture
def second_token(second_user):
    return create_access_token({"user_id": str(second_user.id)})

@pytest.fixture
def room_service(async_session):
    return RoomService(async_session)

@pytest.fixture
def registry():
    return ConnectionRegistry()

@pytest.fixture
def chat_service(async_session, room_service, registry):
    return ChatService(room_service=room_service, db=async_session, registry=registry)

@pytest.fixture
async def general_room(room_service, test_user):
    return await room_service.create_room(
        test_user.id,
        CreateRoomRequest(name="general", description="Main room", password=ROOM_PASSWORD),
    )

@pytest.fixture
def connection_factory():
    return FakeConnection

@pytest.fixture
def user_factory(async_session):
    async def _make(username, **kwargs):
        return await make_user(async_session, username, **kwargs)
    return _make

@pytest.fixture
def room_password():
    return ROOM_PASSWORD
