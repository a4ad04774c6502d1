from fastapi import APIRouter, Depends, Query, status
from uuid import UUID

from ..schemas.message import MessagePageEnvelope
from ..schemas.room import (
    CreateRoomRequest,
    InvitationListEnvelope,
    InvitationResolvedResponse,
    InvitationSentResponse,
    InviteRequest,
    JoinRoomRequest,
    JoinRoomResponse,
    RoomEnvelope,
    RoomListEnvelope,
    RoomSummary,
)
from ..services.chat_service import ChatService
from ..services.room_service import RoomService, to_room_response
from uchat.dependencies.service_dependencies import get_chat_service, get_room_service
from uchat.dependencies.auth_dependencies import get_current_user
from uchat.models.user import User

router = APIRouter(prefix="/api/rooms", tags=["rooms"])

@router.post("", response_model=RoomEnvelope, status_code=status.HTTP_201_CREATED)
async def create_room(
    request: CreateRoomRequest,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """
    Create a new password-protected room.

    Args:
        request: Room creation request
        current_user: Authenticated user details
        room_service: Room service instance

    Returns:
        RoomEnvelope with the created room; the creator is its admin
    """
    room = await room_service.create_room(
        user_id=current_user.id,
        request=request
    )
    return RoomEnvelope(room=to_room_response(room, current_user.id))

@router.get("", response_model=RoomListEnvelope)
async def get_user_rooms(
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """
    Gets all rooms the user is a member of, with their role and whether
    they already hold access.
    """
    rooms = await room_service.get_user_rooms(current_user.id)
    return RoomListEnvelope(rooms=rooms)

@router.get("/invitations", response_model=InvitationListEnvelope)
async def get_pending_invitations(
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """
    Lists the pending invitations addressed to the current user.
    """
    invitations = await room_service.get_pending_invitations(current_user.id)
    return InvitationListEnvelope(invitations=invitations)

@router.post("/invitations/{invite_code}/accept", response_model=InvitationResolvedResponse)
async def accept_invitation(
    invite_code: str,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """
    Accept an invitation. The room password is still required on first entry.
    """
    room = await room_service.accept_invitation(invite_code, current_user.id)
    return InvitationResolvedResponse(
        message=f"Successfully accepted invitation to {room.name}",
        room=RoomSummary.model_validate(room),
    )

@router.post("/invitations/{invite_code}/decline", response_model=InvitationResolvedResponse)
async def decline_invitation(
    invite_code: str,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """
    Decline an invitation.
    """
    room = await room_service.decline_invitation(invite_code, current_user.id)
    return InvitationResolvedResponse(message=f"Declined invitation to {room.name}")

@router.post("/{room_id}/join", response_model=JoinRoomResponse)
async def join_room(
    room_id: UUID,
    request: JoinRoomRequest,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """
    Join a room with its password, or confirm existing access.

    Args:
        room_id: ID of the room
        request: Optional password; not needed once access was granted
        current_user: Authenticated user details
        room_service: Room service instance
    """
    await room_service.join_room(
        user_id=current_user.id,
        room_id=room_id,
        password=request.password,
    )
    return JoinRoomResponse(message="Access granted to room")

@router.post("/{room_id}/invite", response_model=InvitationSentResponse)
async def send_invitation(
    room_id: UUID,
    request: InviteRequest,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """
    Invite another user to a room the current user is a member of.
    """
    invitation = await room_service.send_invitation(room_id, current_user, request.username)
    return InvitationSentResponse(
        message=f"Invitation sent to {request.username}",
        invite_code=invitation.invite_code,
    )

@router.get("/{room_id}/messages", response_model=MessagePageEnvelope)
async def get_room_messages(
    room_id: UUID,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
    limit: int = Query(50, ge=1, le=100, description="Number of messages to return"),
    offset: int = Query(0, ge=0, description="Number of messages to skip")
):
    """
    Retrieve decrypted message history for a room, oldest first.

    Args:
        room_id: ID of the room
        current_user: Authenticated user details
        chat_service: Chat service instance
        limit: Number of messages to return
        offset: Number of messages to skip
    """
    messages = await chat_service.get_room_messages(
        user_id=current_user.id,
        room_id=room_id,
        limit=limit,
        offset=offset,
    )
    return MessagePageEnvelope(messages=messages)
