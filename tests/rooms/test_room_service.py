import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from uchat.core.encryption import decrypt_message
from uchat.core.exceptions import (
    AlreadyMemberException,
    DuplicateInvitationException,
    InvalidRoomPasswordException,
    InvitationAlreadyResolvedException,
    InvitationExpiredException,
    InvitationNotFoundException,
    RoomAlreadyExistsException,
    RoomFullException,
    RoomNotFoundException,
    UnauthorizedAccessException,
    UserNotFoundException,
)
from uchat.models.invitation import Invitation
from uchat.models.message import Message
from uchat.schemas.message import MessageType
from uchat.schemas.room import CreateRoomRequest, InvitationStatus, MemberRole
from uchat.services import access_control
from uchat.utils.clock import utcnow


@pytest.mark.asyncio
async def test_create_room(general_room, test_user, room_password):
    assert general_room.name == "general"
    assert general_room.hashed_password != room_password
    assert len(general_room.encryption_key) == 64
    assert general_room.max_members == 50

    membership = access_control.require_access(general_room, test_user.id)
    assert membership.role == MemberRole.ADMIN


@pytest.mark.asyncio
async def test_create_room_duplicate_name(room_service, general_room, test_user, second_user):
    with pytest.raises(RoomAlreadyExistsException):
        await room_service.create_room(
            test_user.id, CreateRoomRequest(name="general", password="other")
        )

    # Another creator may reuse the name.
    other = await room_service.create_room(
        second_user.id, CreateRoomRequest(name="general", password="other")
    )
    assert other.id != general_room.id
    assert other.encryption_key != general_room.encryption_key


@pytest.mark.asyncio
async def test_get_room_unknown(room_service):
    with pytest.raises(RoomNotFoundException):
        await room_service.get_room(uuid.uuid4())


@pytest.mark.asyncio
async def test_get_room_inactive(room_service, general_room, async_session):
    general_room.is_active = False
    await async_session.commit()
    with pytest.raises(RoomNotFoundException):
        await room_service.get_room(general_room.id)


@pytest.mark.asyncio
async def test_join_wrong_then_right_password(room_service, general_room, second_user, room_password):
    with pytest.raises(InvalidRoomPasswordException):
        await room_service.join_room(second_user.id, general_room.id, "wrong")

    room = await room_service.get_room(general_room.id)
    assert access_control.find_membership(room, second_user.id) is None

    room, membership = await room_service.join_room(second_user.id, general_room.id, room_password)
    assert membership.has_access is True
    assert len(room.memberships) == 2

    # Access is kept: no password needed again and no second membership.
    room, again = await room_service.join_room(second_user.id, general_room.id)
    assert again.id == membership.id
    assert len(room.memberships) == 2


@pytest.mark.asyncio
async def test_join_full_room(room_service, test_user, second_user, third_user, room_password):
    room = await room_service.create_room(
        test_user.id, CreateRoomRequest(name="tiny", password=room_password, max_members=2)
    )
    await room_service.join_room(second_user.id, room.id, room_password)
    with pytest.raises(RoomFullException):
        await room_service.join_room(third_user.id, room.id, room_password)


@pytest.mark.asyncio
async def test_invitation_flow(
    room_service, general_room, test_user, second_user, async_session, room_password
):
    invitation = await room_service.send_invitation(general_room.id, test_user, "bob")
    assert invitation.status == InvitationStatus.PENDING
    assert len(invitation.invite_code) == 32

    notice = (
        await async_session.execute(
            select(Message).filter(Message.message_type == MessageType.INVITATION)
        )
    ).scalar_one()
    assert decrypt_message(notice.encrypted_content, general_room.encryption_key) == (
        "Test User invited Bob to the room"
    )

    pending = await room_service.get_pending_invitations(second_user.id)
    assert [p.invite_code for p in pending] == [invitation.invite_code]
    assert pending[0].room.name == "general"
    assert pending[0].invited_by.username == "testuser"

    # Codes are matched case-insensitively.
    room = await room_service.accept_invitation(invitation.invite_code.lower(), second_user.id)
    membership = access_control.find_membership(room, second_user.id)
    assert membership.has_access is False
    assert await room_service.get_pending_invitations(second_user.id) == []

    with pytest.raises(UnauthorizedAccessException):
        await room_service.get_accessible_room(second_user.id, general_room.id)
    with pytest.raises(InvalidRoomPasswordException):
        await room_service.join_room(second_user.id, general_room.id)

    _, membership = await room_service.join_room(second_user.id, general_room.id, room_password)
    assert membership.has_access is True
    await room_service.get_accessible_room(second_user.id, general_room.id)

    with pytest.raises(InvitationAlreadyResolvedException):
        await room_service.accept_invitation(invitation.invite_code, second_user.id)


@pytest.mark.asyncio
async def test_invite_errors(room_service, general_room, test_user, second_user, third_user):
    with pytest.raises(UserNotFoundException):
        await room_service.send_invitation(general_room.id, test_user, "nobody")
    with pytest.raises(AlreadyMemberException):
        await room_service.send_invitation(general_room.id, test_user, "testuser")
    with pytest.raises(UnauthorizedAccessException):
        await room_service.send_invitation(general_room.id, third_user, "bob")

    await room_service.send_invitation(general_room.id, test_user, "bob")
    with pytest.raises(DuplicateInvitationException):
        await room_service.send_invitation(general_room.id, test_user, "bob")


@pytest.mark.asyncio
async def test_accept_expired_invitation_persists_status(
    room_service, general_room, test_user, second_user, async_session
):
    invitation = await room_service.send_invitation(general_room.id, test_user, "bob")
    invitation.expires_at = utcnow() - timedelta(minutes=1)
    await async_session.commit()

    assert await room_service.get_pending_invitations(second_user.id) == []

    with pytest.raises(InvitationExpiredException):
        await room_service.accept_invitation(invitation.invite_code, second_user.id)

    stored = (
        await async_session.execute(
            select(Invitation.status).filter(Invitation.id == invitation.id)
        )
    ).scalar_one()
    assert stored == InvitationStatus.EXPIRED

    room = await room_service.get_room(general_room.id)
    assert access_control.find_membership(room, second_user.id) is None


@pytest.mark.asyncio
async def test_accept_unknown_code(room_service, second_user):
    with pytest.raises(InvitationNotFoundException):
        await room_service.accept_invitation("DEADBEEF", second_user.id)


@pytest.mark.asyncio
async def test_decline_invitation(room_service, general_room, test_user, second_user):
    invitation = await room_service.send_invitation(general_room.id, test_user, "bob")

    with pytest.raises(UnauthorizedAccessException):
        await room_service.decline_invitation(invitation.invite_code, test_user.id)

    await room_service.decline_invitation(invitation.invite_code, second_user.id)
    assert invitation.status == InvitationStatus.DECLINED
    with pytest.raises(InvitationAlreadyResolvedException):
        await room_service.accept_invitation(invitation.invite_code, second_user.id)


@pytest.mark.asyncio
async def test_get_user_rooms(room_service, general_room, test_user, second_user, room_password):
    await room_service.create_room(test_user.id, CreateRoomRequest(name="random", password="pw"))
    rooms = await room_service.get_user_rooms(test_user.id)
    assert {r.name for r in rooms} == {"general", "random"}
    assert all(r.role == MemberRole.ADMIN and r.has_access for r in rooms)

    assert await room_service.get_user_rooms(second_user.id) == []
    await room_service.join_room(second_user.id, general_room.id, room_password)
    rooms = await room_service.get_user_rooms(second_user.id)
    assert len(rooms) == 1
    assert rooms[0].member_count == 2
    assert rooms[0].role == MemberRole.MEMBER
