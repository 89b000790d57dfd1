from typing import Optional, Tuple

from fastapi import Depends, Query

from app.constants import Role
from app.security import get_current_user, get_optional_user, require_roles
from app.services.realtime import Emitter
from app.services.socket_service import sio
from app.utils.pagination import normalize_page

# Common dependencies used across routers
CurrentUser = Depends(get_current_user)
OptionalUser = Depends(get_optional_user)
AdminUser = Depends(require_roles([Role.ADMIN]))


def page_params(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
) -> Tuple[int, int]:
    return normalize_page(page, limit)


def get_emitter() -> Optional[Emitter]:
    """Real-time transport handed to services; tests override it."""
    return sio


Page = Depends(page_params)
Realtime = Depends(get_emitter)
