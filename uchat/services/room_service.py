from datetime import timedelta
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.orm import selectinload
from typing import List, Tuple

from uchat.core.config import settings
from uchat.core.encryption import generate_room_key
from uchat.core.log_config import logger
from uchat.core.security import hash_access_secret
from uchat.schemas.message import MessageType
from uchat.services import access_control
from uchat.services.message_codec import compose_message
from uchat.utils.clock import as_utc, utcnow
from ..models.invitation import Invitation
from ..models.room import Room
from ..models.room_membership import RoomMembership
from ..models.user import User
from ..schemas.room import (
    CreateRoomRequest,
    InvitationResponse,
    InvitationStatus,
    RoomResponse,
    RoomSummary,
)
from ..schemas.user import UserSummary
from ..core.exceptions import (
    InvitationExpiredException,
    InvitationNotFoundException,
    UserNotFoundException,
    RoomNotFoundException,
    RoomAlreadyExistsException,
)

def to_room_response(room: Room, user_id: UUID) -> RoomResponse:
    membership = access_control.find_membership(room, user_id)
    return RoomResponse(
        id=room.id,
        name=room.name,
        description=room.description or "",
        created_by=room.created_by,
        created_at=as_utc(room.created_at),
        member_count=len(room.memberships),
        max_members=room.max_members,
        role=membership.role if membership else "member",
        has_access=bool(membership and membership.has_access),
    )

class RoomService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_room(
        self,
        user_id: UUID,
        request: CreateRoomRequest,
    ) -> Room:
        """
        Create a password-protected room with its own encryption key.

        Args:
            user_id: ID of the creator
            request: Room creation request

        Returns:
            The new Room, with the creator as an admin member holding access

        Raises:
            RoomAlreadyExistsException: If the creator already has an active room with this name
        """
        name = request.name.strip()
        existing_room = await self.db.execute(
            select(Room).filter(
                and_(
                    Room.created_by == user_id,
                    Room.name == name,
                    Room.is_active.is_(True)
                )
            )
        )
        if existing_room.scalar():
            raise RoomAlreadyExistsException()

        room = Room(
            name=name,
            description=request.description.strip(),
            created_by=user_id,
            hashed_password=hash_access_secret(request.password),
            encryption_key=generate_room_key(),
            max_members=request.max_members or settings.default_max_members,
            is_active=True,
        )
        access_control.add_creator(room, user_id)
        self.db.add(room)
        await self.db.commit()

        logger.info(f"Room '{room.name}' ({room.id}) created by {user_id}")
        return room

    async def get_room(self, room_id: UUID) -> Room:
        """
        Load an active room with its memberships and invitations, always
        re-reading them from the database.

        Raises:
            RoomNotFoundException: If the room does not exist or is inactive
        """
        result = await self.db.execute(
            select(Room)
            .options(selectinload(Room.memberships), selectinload(Room.invitations))
            .filter(Room.id == room_id)
            .execution_options(populate_existing=True)
        )
        room = result.scalar_one_or_none()
        if not room or not room.is_active:
            raise RoomNotFoundException()
        return room

    async def join_room(self, user_id: UUID, room_id: UUID, password: str = None) -> Tuple[Room, RoomMembership]:
        """
        Make sure the user holds access to the room, proving the password
        if they do not yet.

        Returns:
            A tuple (room, membership)

        Raises:
            RoomNotFoundException, UnauthorizedAccessException,
            InvalidRoomPasswordException, RoomFullException
        """
        room = await self.get_room(room_id)
        already_granted = isinstance(
            access_control.access_state(room, user_id), access_control.MemberWithAccess
        )
        membership = access_control.join_with_password(room, user_id, password)

        if not already_granted:
            await self.db.commit()
            logger.info(f"User {user_id} was granted access to room {room_id}")
        return room, membership

    async def get_accessible_room(self, user_id: UUID, room_id: UUID) -> Room:
        """Load a room the user already holds access to."""
        room = await self.get_room(room_id)
        access_control.require_access(room, user_id)
        return room

    async def send_invitation(self, room_id: UUID, inviter: User, username: str) -> Invitation:
        """
        Invite a user by username. An invitation notice is recorded in the
        room's history.

        Raises:
            UserNotFoundException, UnauthorizedAccessException,
            AlreadyMemberException, DuplicateInvitationException
        """
        result = await self.db.execute(select(User).filter(User.username == username.strip()))
        invitee = result.scalar_one_or_none()
        if not invitee:
            raise UserNotFoundException()

        room = await self.get_room(room_id)
        invitation = access_control.invite(
            room,
            inviter_id=inviter.id,
            invitee_id=invitee.id,
            now=utcnow(),
            ttl=timedelta(days=settings.invitation_ttl_days),
        )
        self.db.add(
            compose_message(
                inviter,
                f"{inviter.display_name} invited {invitee.display_name} to the room",
                room_id=room.id,
                room_name=room.name,
                room_key=room.encryption_key,
                message_type=MessageType.INVITATION,
            )
        )
        await self.db.commit()

        logger.info(f"User {inviter.id} invited {invitee.id} to room {room_id}")
        return invitation

    async def _get_invitation(self, invite_code: str) -> Invitation:
        result = await self.db.execute(
            select(Invitation).filter(Invitation.invite_code == invite_code.strip().upper())
        )
        invitation = result.scalar_one_or_none()
        if not invitation:
            raise InvitationNotFoundException()
        return invitation

    async def accept_invitation(self, invite_code: str, user_id: UUID) -> Room:
        """
        Accept an invitation. The new member still has to prove the room
        password on first entry.

        Raises:
            InvitationNotFoundException, InvitationAlreadyResolvedException,
            InvitationExpiredException, UnauthorizedAccessException,
            AlreadyMemberException, RoomFullException
        """
        invitation = await self._get_invitation(invite_code)
        room = await self.get_room(invitation.room_id)
        try:
            access_control.accept_invitation(room, invitation, user_id, utcnow())
        except InvitationExpiredException:
            # The expired status sticks even though the call fails.
            await self.db.commit()
            raise
        await self.db.commit()

        logger.info(f"User {user_id} accepted invitation to room {room.id}")
        return room

    async def decline_invitation(self, invite_code: str, user_id: UUID) -> Room:
        invitation = await self._get_invitation(invite_code)
        room = await self.get_room(invitation.room_id)
        access_control.decline_invitation(invitation, user_id)
        await self.db.commit()
        return room

    async def get_pending_invitations(self, user_id: UUID) -> List[InvitationResponse]:
        """Pending, unexpired invitations addressed to the user."""
        result = await self.db.execute(
            select(Invitation)
            .join(Invitation.room)
            .options(selectinload(Invitation.room), selectinload(Invitation.invited_by))
            .filter(
                and_(
                    Invitation.invited_user_id == user_id,
                    Invitation.status == InvitationStatus.PENDING,
                    Room.is_active.is_(True)
                )
            )
            .order_by(Invitation.created_at.desc())
        )
        now = utcnow()
        return [
            InvitationResponse(
                id=inv.id,
                invite_code=inv.invite_code,
                status=inv.status,
                room=RoomSummary.model_validate(inv.room),
                invited_by=UserSummary.model_validate(inv.invited_by),
                created_at=as_utc(inv.created_at),
                expires_at=as_utc(inv.expires_at),
            )
            for inv in result.scalars().all()
            if as_utc(inv.expires_at) >= now
        ]

    async def get_user_rooms(self, user_id: UUID) -> List[RoomResponse]:
        """
        Gets all active rooms the user is a member of, most recently
        updated first.
        """
        rooms_query = (
            select(Room)
            .join(Room.memberships)
            .where(
                and_(
                    RoomMembership.user_id == user_id,
                    Room.is_active.is_(True)
                )
            )
            .options(selectinload(Room.memberships))
            .order_by(Room.updated_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(rooms_query)
        rooms = result.scalars().unique().all()
        return [to_room_response(room, user_id) for room in rooms]
