from fastapi import APIRouter, Depends
from uuid import UUID

from uchat.dependencies.auth_dependencies import get_current_user
from uchat.dependencies.service_dependencies import get_chat_service
from uchat.models.user import User
from ..schemas.message import EditMessageRequest, MessageEnvelope
from ..services.chat_service import ChatService

router = APIRouter(prefix="/api/messages", tags=["messages"])

@router.put("/{message_id}", response_model=MessageEnvelope)
async def edit_message(
    message_id: UUID,
    request: EditMessageRequest,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service)
):
    """
    Edit one of your own messages. The room sees a messageEdited event.
    """
    message = await chat_service.edit_message(current_user.id, message_id, request.text)
    return MessageEnvelope(message=message)

@router.delete("/{message_id}")
async def delete_message(
    message_id: UUID,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service)
):
    """
    Delete one of your own messages. The room sees a messageDeleted event.
    """
    await chat_service.delete_message(current_user.id, message_id)
    return {"success": True, "message": "Message deleted successfully"}
