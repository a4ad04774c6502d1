"""
Room access state machine.

A user stands in one of three states towards a room:

    NonMember -> MemberNoAccess -> MemberWithAccess

MemberNoAccess is reached by accepting an invitation; a direct join with the
room password goes straight to MemberWithAccess. Access is granted once and
kept, so later joins never ask for the password again.

Everything here works on loaded ORM objects and performs no I/O; callers
persist the result.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union
from uuid import UUID

from uchat.core.encryption import generate_invite_code
from uchat.core.exceptions import (
    AlreadyMemberException,
    DuplicateInvitationException,
    InvalidRoomPasswordException,
    InvitationAlreadyResolvedException,
    InvitationExpiredException,
    RoomFullException,
    RoomNotFoundException,
    UnauthorizedAccessException,
)
from uchat.core.security import verify_access_secret
from uchat.models.invitation import Invitation
from uchat.models.room import Room
from uchat.models.room_membership import RoomMembership
from uchat.schemas.room import InvitationStatus, MemberRole
from uchat.utils.clock import as_utc


@dataclass(frozen=True)
class NonMember:
    pass


@dataclass(frozen=True)
class MemberNoAccess:
    membership: RoomMembership


@dataclass(frozen=True)
class MemberWithAccess:
    membership: RoomMembership


AccessState = Union[NonMember, MemberNoAccess, MemberWithAccess]


def find_membership(room: Room, user_id: UUID) -> Optional[RoomMembership]:
    return next((m for m in room.memberships if m.user_id == user_id), None)


def access_state(room: Room, user_id: UUID) -> AccessState:
    membership = find_membership(room, user_id)
    if membership is None:
        return NonMember()
    if membership.has_access:
        return MemberWithAccess(membership)
    return MemberNoAccess(membership)


def is_full(room: Room) -> bool:
    # Checked at the moment of the state change, nothing is reserved ahead.
    return len(room.memberships) >= room.max_members


def require_active(room: Room) -> None:
    if not room.is_active:
        raise RoomNotFoundException()


def require_access(room: Room, user_id: UUID) -> RoomMembership:
    """Return the caller's membership, or raise unless they hold access."""
    state = access_state(room, user_id)
    if not isinstance(state, MemberWithAccess):
        raise UnauthorizedAccessException(detail="Access denied to this room")
    return state.membership


def require_membership(room: Room, user_id: UUID) -> RoomMembership:
    membership = find_membership(room, user_id)
    if membership is None:
        raise UnauthorizedAccessException(detail="You are not a member of this room")
    return membership


def add_creator(room: Room, creator_id: UUID) -> RoomMembership:
    """The creator starts as an admin who already has access."""
    membership = RoomMembership(user_id=creator_id, role=MemberRole.ADMIN, has_access=True)
    room.memberships.append(membership)
    return membership


def join_with_password(room: Room, user_id: UUID, password: Optional[str]) -> RoomMembership:
    """
    Move the user to MemberWithAccess, verifying the room password when needed.

    Raises:
        RoomNotFoundException: If the room is inactive
        UnauthorizedAccessException: If a non-member supplies no password
        InvalidRoomPasswordException: If the password is missing or wrong
        RoomFullException: If a new member would exceed capacity
    """
    require_active(room)
    state = access_state(room, user_id)

    if isinstance(state, MemberWithAccess):
        return state.membership

    if isinstance(state, MemberNoAccess):
        if not password:
            raise InvalidRoomPasswordException(detail="Password required for first access")
        if not verify_access_secret(password, room.hashed_password):
            raise InvalidRoomPasswordException()
        state.membership.has_access = True
        return state.membership

    if not password:
        raise UnauthorizedAccessException(detail="Access denied to this room")
    if not verify_access_secret(password, room.hashed_password):
        raise InvalidRoomPasswordException()
    if is_full(room):
        raise RoomFullException()

    membership = RoomMembership(user_id=user_id, role=MemberRole.MEMBER, has_access=True)
    room.memberships.append(membership)
    return membership


def _expire_stale(room: Room, invitee_id: UUID, now: datetime) -> None:
    for invitation in room.invitations:
        if (
            invitation.invited_user_id == invitee_id
            and invitation.status == InvitationStatus.PENDING
            and as_utc(invitation.expires_at) < now
        ):
            invitation.status = InvitationStatus.EXPIRED


def invite(room: Room, inviter_id: UUID, invitee_id: UUID, now: datetime, ttl: timedelta) -> Invitation:
    """
    Create a pending invitation for a user who is not yet a member.

    Raises:
        UnauthorizedAccessException: If the inviter is not a member
        AlreadyMemberException: If the invitee is already a member
        DuplicateInvitationException: If a pending invitation already exists
    """
    require_active(room)
    require_membership(room, inviter_id)

    if find_membership(room, invitee_id) is not None:
        raise AlreadyMemberException()

    _expire_stale(room, invitee_id, now)
    if any(
        inv.invited_user_id == invitee_id and inv.status == InvitationStatus.PENDING
        for inv in room.invitations
    ):
        raise DuplicateInvitationException()

    invitation = Invitation(
        invited_by_id=inviter_id,
        invited_user_id=invitee_id,
        invite_code=generate_invite_code(),
        status=InvitationStatus.PENDING,
        created_at=now,
        expires_at=now + ttl,
    )
    room.invitations.append(invitation)
    return invitation


def _require_pending_for(invitation: Invitation, user_id: UUID) -> None:
    if invitation.status != InvitationStatus.PENDING:
        raise InvitationAlreadyResolvedException(
            detail=f"Invitation has already been {invitation.status.value}"
        )
    if invitation.invited_user_id != user_id:
        raise UnauthorizedAccessException(detail="This invitation is not for you")


def accept_invitation(room: Room, invitation: Invitation, user_id: UUID, now: datetime) -> RoomMembership:
    """
    Turn a pending invitation into a membership without access.

    An invitation found past its expiry is moved to expired before the
    error is raised, so the caller should persist the room either way.
    """
    require_active(room)
    _require_pending_for(invitation, user_id)

    if as_utc(invitation.expires_at) < now:
        invitation.status = InvitationStatus.EXPIRED
        raise InvitationExpiredException()

    if find_membership(room, user_id) is not None:
        raise AlreadyMemberException(detail="You are already a member of this room")
    if is_full(room):
        raise RoomFullException()

    membership = RoomMembership(user_id=user_id, role=MemberRole.MEMBER, has_access=False)
    room.memberships.append(membership)
    invitation.status = InvitationStatus.ACCEPTED
    return membership


def decline_invitation(invitation: Invitation, user_id: UUID) -> None:
    _require_pending_for(invitation, user_id)
    invitation.status = InvitationStatus.DECLINED
