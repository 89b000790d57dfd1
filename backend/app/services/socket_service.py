"""
Socket.IO service for real-time messages and notifications.
"""
from typing import Dict, Optional

import socketio
from fastapi import HTTPException

from app.config import get_settings
from app.models import User
from app.security import user_from_token
from app.services import message_service
from app.services.realtime import active_connections, user_room
from app.utils.logger import get_logger
from app.utils.serializers import message_out

settings = get_settings()
logger = get_logger("socket")

# Create Socket.IO server
sio = socketio.AsyncServer(
    cors_allowed_origins=settings.cors_origins or "*",
    async_mode="asgi",
    logger=False,
    engineio_logger=False,
)

# Store user per socket: socketId -> User
socket_users: Dict[str, User] = {}


def _token_from(environ: Optional[dict], auth: Optional[dict]) -> Optional[str]:
    if auth and auth.get("token"):
        return auth["token"]
    header = (environ or {}).get("HTTP_AUTHORIZATION", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):]
    return None


async def _emit_error(sid: str, message: str, status_code: int) -> None:
    await sio.emit("error", {"message": message, "code": f"E{status_code}"}, room=sid)


@sio.on("connect")
async def connect(sid: str, environ: dict, auth: Optional[dict] = None):
    """Authenticate the socket and join the user's personal room."""
    token = _token_from(environ, auth)
    if not token:
        logger.warning(f"Connection rejected for {sid}: no token")
        return False
    try:
        user = await user_from_token(token, token_type="access")
    except HTTPException as exc:
        logger.warning(f"Connection rejected for {sid}: {exc.detail}")
        return False

    user_id = str(user.id)
    socket_users[sid] = user
    active_connections.setdefault(user_id, set()).add(sid)
    await sio.enter_room(sid, user_room(user_id))
    logger.info(f"User connected: {user_id} ({user.username}) - socket {sid}")
    return True


@sio.on("disconnect")
async def disconnect(sid: str, *args):
    user = socket_users.pop(sid, None)
    if user is None:
        logger.info(f"Socket disconnected: {sid}")
        return
    user_id = str(user.id)
    sockets = active_connections.get(user_id)
    if sockets is not None:
        sockets.discard(sid)
        if not sockets:
            active_connections.pop(user_id, None)
    logger.info(f"User disconnected: {user_id} - socket {sid}")


@sio.on("send_message")
async def send_message(sid: str, data: dict):
    """Send a direct message: ``{"receiver_id": ..., "content": ...}``."""
    user = socket_users.get(sid)
    if user is None:
        await _emit_error(sid, "Not authenticated", 401)
        return
    data = data or {}
    receiver_id = data.get("receiver_id")
    content = (data.get("content") or "").strip()
    if not receiver_id:
        await _emit_error(sid, "receiver_id is required", 400)
        return
    if not content:
        await _emit_error(sid, "Message content cannot be empty", 400)
        return

    try:
        message = await message_service.send_message(
            sender=user, receiver_id=receiver_id, content=content, emitter=sio
        )
    except HTTPException as exc:
        await _emit_error(sid, str(exc.detail), exc.status_code)
        return
    except Exception:
        logger.exception(f"Error sending message from {user.id}")
        await _emit_error(sid, "Failed to send message", 500)
        return

    await sio.emit("message_sent", message_out(message).model_dump(mode="json"), room=sid)


@sio.on("mark_read")
async def mark_read(sid: str, data: dict):
    """Clear the caller's unread counter: ``{"conversation_id": ...}``."""
    user = socket_users.get(sid)
    if user is None:
        await _emit_error(sid, "Not authenticated", 401)
        return
    conversation_id = (data or {}).get("conversation_id")
    if not conversation_id:
        await _emit_error(sid, "conversation_id is required", 400)
        return

    try:
        await message_service.mark_conversation_read(conversation_id=conversation_id, user=user)
    except HTTPException as exc:
        await _emit_error(sid, str(exc.detail), exc.status_code)
        return
    except Exception:
        logger.exception(f"Error marking conversation {conversation_id} read for {user.id}")
        await _emit_error(sid, "Failed to mark messages as read", 500)
        return

    await sio.emit("marked_read", {"conversation_id": conversation_id}, room=sid)


def get_socket_app():
    """Get Socket.IO ASGI app."""
    return socketio.ASGIApp(sio, socketio_path="socket.io")
