import json
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from uchat.core.exceptions import BaseAPIException
from uchat.dependencies.auth_dependencies import get_current_user_from_websocket
from uchat.dependencies.service_dependencies import get_chat_service
from uchat.models.user import User
from uchat.core.log_config import logger
from uchat.schemas.events import INBOUND_EVENTS, EventType
from uchat.services.chat_service import ChatService
from uchat.utils.connection_registry import ClientConnection

router = APIRouter(tags=["websocket"])

FAILURE_MESSAGES = {
    EventType.JOIN_ROOM: "Failed to join room",
    EventType.SEND_MESSAGE: "Failed to send message",
    EventType.TYPING: "Failed to update typing status",
}


async def dispatch_event(
    chat_service: ChatService,
    connection: ClientConnection,
    user: User,
    raw: str,
):
    """
    Parses one inbound frame and runs its handler. Every failure is reported
    to this connection only as an error event; nothing propagates.
    """
    registry = chat_service.registry

    try:
        message_data = json.loads(raw)
        event = EventType(message_data.get("type"))
        payload = INBOUND_EVENTS[event].model_validate(message_data)
    except (json.JSONDecodeError, AttributeError):
        logger.warning(f"Invalid JSON received from {user.username}: {raw}")
        await registry.send(connection, EventType.ERROR, {"message": "Invalid message format"})
        return
    except ValidationError as e:
        logger.warning(f"Invalid payload from {user.username}: {e}")
        await registry.send(connection, EventType.ERROR, {"message": "Invalid event payload"})
        return
    except (ValueError, KeyError):
        logger.warning(f"Unknown event from {user.username}: {raw}")
        await registry.send(connection, EventType.ERROR, {"message": "Unknown event type"})
        return

    try:
        if event == EventType.JOIN_ROOM:
            logger.info(f"User {user.username} joining room {payload.room_id}")
            await chat_service.join_room(connection, user, payload.room_id, payload.password)

        elif event == EventType.SEND_MESSAGE:
            await chat_service.send_message(connection, user, payload.text)

        elif event == EventType.TYPING:
            await chat_service.set_typing(connection, payload.is_typing)

    except BaseAPIException as e:
        logger.warning(f"{event.value} rejected for {user.username}: {e.detail}")
        await registry.send(connection, EventType.ERROR, {"message": e.detail})

    except SQLAlchemyError as e:
        logger.error(f"Storage failure during {event.value} for {user.username}: {e}", exc_info=True)
        await chat_service.recover(user)
        await registry.send(connection, EventType.ERROR, {"message": FAILURE_MESSAGES[event]})

    except Exception as e:
        logger.error(f"Unhandled error during {event.value} for {user.username}: {e}", exc_info=True)
        await registry.send(connection, EventType.ERROR, {"message": FAILURE_MESSAGES[event]})


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    user: User = Depends(get_current_user_from_websocket),
    chat_service: ChatService = Depends(get_chat_service),
):
    if user is None:
        logger.warning("WebSocket connection rejected: invalid token provided.")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token")
        return

    await websocket.accept()
    connection = ClientConnection(websocket)
    logger.info(f"User {user.username} ({user.id}) connected via WebSocket as {connection.id}.")

    try:
        while True:
            data = await websocket.receive_text()
            logger.debug(f"Data received from {user.username} ({user.id}): {data}")
            await dispatch_event(chat_service, connection, user, data)

    except WebSocketDisconnect as e:
        logger.info(f"User {user.username} disconnected. Code: {e.code}, Reason: {e.reason}")

    except Exception as e:
        logger.error(f"An unhandled error occurred in websocket for {user.username} ({user.id}): {e}", exc_info=True)

    finally:
        await chat_service.disconnect(connection)
