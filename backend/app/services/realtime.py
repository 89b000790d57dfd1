"""Best-effort real-time delivery shared by the socket and notification services.

Emits run as background tasks so a slow or broken transport never delays or
fails the request that triggered them.
"""
import asyncio
from typing import Any, Dict, Optional, Protocol, Set

from app.utils.logger import get_logger

logger = get_logger("realtime")

# Store active connections: userId -> Set of socketIds
active_connections: Dict[str, Set[str]] = {}

_pending_emits: Set[asyncio.Task] = set()


class Emitter(Protocol):
    async def emit(self, event: str, data: Any = None, room: Optional[str] = None, **kwargs) -> None:
        ...


def user_room(user_id) -> str:
    return f"user_{user_id}"


def is_user_online(user_id) -> bool:
    return bool(active_connections.get(str(user_id)))


async def _safe_emit(emitter: Emitter, event: str, payload: dict, room: str) -> None:
    try:
        await emitter.emit(event, payload, room=room)
    except Exception:
        logger.exception(f"Failed to emit '{event}' to {room}")


def schedule_emit(emitter: Optional[Emitter], event: str, payload: dict, *, room: str) -> None:
    """Fire-and-forget emit; the task is tracked so shutdown can drain it."""
    if emitter is None:
        return
    task = asyncio.get_running_loop().create_task(_safe_emit(emitter, event, payload, room))
    _pending_emits.add(task)
    task.add_done_callback(_pending_emits.discard)


async def drain_pending_emits() -> None:
    """Wait for every scheduled emit to settle."""
    while _pending_emits:
        await asyncio.gather(*list(_pending_emits), return_exceptions=True)
