import pytest
from httpx import AsyncClient, ASGITransport
from uchat.main import app
from uchat.database.session import get_db_session
from uchat.utils.connection_registry import ConnectionRegistry

@pytest.fixture(autouse=True)
def override_get_db_session(async_session):
    async def _override():
        yield async_session
    app.dependency_overrides[get_db_session] = _override
    app.state.connection_registry = ConnectionRegistry()
    yield
    app.dependency_overrides.clear()

@pytest.fixture
async def async_test_client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

def auth(token):
    return {"Authorization": f"Bearer {token}"}

@pytest.mark.asyncio
async def test_create_room(async_test_client, test_token, test_user):
    response = await async_test_client.post(
        "/api/rooms",
        json={"name": "general", "description": "Main room", "password": "secret123"},
        headers=auth(test_token)
    )
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    room = data["room"]
    assert room["name"] == "general"
    assert room["createdBy"] == str(test_user.id)
    assert room["memberCount"] == 1
    assert room["role"] == "admin"
    assert room["hasAccess"] is True
    assert "encryptionKey" not in room
    assert "hashedPassword" not in room

@pytest.mark.asyncio
async def test_create_room_requires_password(async_test_client, test_token):
    response = await async_test_client.post(
        "/api/rooms",
        json={"name": "general"},
        headers=auth(test_token)
    )
    assert response.status_code == 422
    assert response.json() == {"error": "password: Field required"}

@pytest.mark.asyncio
async def test_create_room_duplicate(async_test_client, test_token, general_room):
    response = await async_test_client.post(
        "/api/rooms",
        json={"name": "general", "password": "secret123"},
        headers=auth(test_token)
    )
    assert response.status_code == 400
    assert response.json() == {"error": "You already have a room with this name"}

@pytest.mark.asyncio
async def test_create_room_unauthenticated(async_test_client):
    response = await async_test_client.post(
        "/api/rooms", json={"name": "general", "password": "secret123"}
    )
    assert response.status_code == 401

@pytest.mark.asyncio
async def test_list_rooms(async_test_client, test_token, second_token, general_room):
    response = await async_test_client.get("/api/rooms", headers=auth(test_token))
    assert response.status_code == 200
    rooms = response.json()["rooms"]
    assert [r["id"] for r in rooms] == [str(general_room.id)]

    response = await async_test_client.get("/api/rooms", headers=auth(second_token))
    assert response.json() == {"success": True, "rooms": []}

@pytest.mark.asyncio
async def test_join_room(async_test_client, second_token, general_room, room_password):
    url = f"/api/rooms/{general_room.id}/join"

    response = await async_test_client.post(url, json={"password": "wrong"}, headers=auth(second_token))
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid room password"}

    response = await async_test_client.post(url, json={}, headers=auth(second_token))
    assert response.status_code == 403

    response = await async_test_client.post(url, json={"password": room_password}, headers=auth(second_token))
    assert response.status_code == 200
    assert response.json()["hasAccess"] is True

    response = await async_test_client.post(url, json={}, headers=auth(second_token))
    assert response.status_code == 200

@pytest.mark.asyncio
async def test_join_unknown_room(async_test_client, second_token):
    response = await async_test_client.post(
        "/api/rooms/00000000-0000-0000-0000-000000000000/join",
        json={"password": "x"},
        headers=auth(second_token)
    )
    assert response.status_code == 404

@pytest.mark.asyncio
async def test_invitation_round_trip(
    async_test_client, test_token, second_token, general_room, room_password
):
    response = await async_test_client.post(
        f"/api/rooms/{general_room.id}/invite",
        json={"username": "bob"},
        headers=auth(test_token)
    )
    assert response.status_code == 200
    code = response.json()["inviteCode"]

    response = await async_test_client.get("/api/rooms/invitations", headers=auth(second_token))
    invitations = response.json()["invitations"]
    assert len(invitations) == 1
    assert invitations[0]["inviteCode"] == code
    assert invitations[0]["invitedBy"]["username"] == "testuser"
    assert invitations[0]["status"] == "pending"

    response = await async_test_client.post(
        f"/api/rooms/invitations/{code}/accept", headers=auth(second_token)
    )
    assert response.status_code == 200
    assert response.json()["room"]["name"] == "general"

    rooms = (await async_test_client.get("/api/rooms", headers=auth(second_token))).json()["rooms"]
    assert rooms[0]["hasAccess"] is False
    assert rooms[0]["role"] == "member"

    response = await async_test_client.get(
        f"/api/rooms/{general_room.id}/messages", headers=auth(second_token)
    )
    assert response.status_code == 403

    response = await async_test_client.post(
        f"/api/rooms/{general_room.id}/join", json={}, headers=auth(second_token)
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Password required for first access"}

    response = await async_test_client.post(
        f"/api/rooms/{general_room.id}/join",
        json={"password": room_password},
        headers=auth(second_token)
    )
    assert response.status_code == 200

    response = await async_test_client.get(
        f"/api/rooms/{general_room.id}/messages", headers=auth(second_token)
    )
    assert response.status_code == 200
    messages = response.json()["messages"]
    assert messages[0]["messageType"] == "invitation"
    assert messages[0]["text"] == "Test User invited Bob to the room"

@pytest.mark.asyncio
async def test_accept_unknown_invitation(async_test_client, second_token):
    response = await async_test_client.post(
        "/api/rooms/invitations/NOPE/accept", headers=auth(second_token)
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Invalid or expired invitation"}

@pytest.mark.asyncio
async def test_decline_invitation(async_test_client, test_token, second_token, general_room):
    response = await async_test_client.post(
        f"/api/rooms/{general_room.id}/invite",
        json={"username": "bob"},
        headers=auth(test_token)
    )
    code = response.json()["inviteCode"]

    response = await async_test_client.post(
        f"/api/rooms/invitations/{code}/decline", headers=auth(second_token)
    )
    assert response.status_code == 200

    response = await async_test_client.post(
        f"/api/rooms/invitations/{code}/accept", headers=auth(second_token)
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invitation has already been declined"}
