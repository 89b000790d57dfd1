import math
from typing import Optional, Tuple

from app.config import get_settings

settings = get_settings()


def normalize_page(page: Optional[int] = 1, limit: Optional[int] = None) -> Tuple[int, int]:
    """Clamp page/limit to safe bounds."""
    safe_page = max(1, page or 1)
    safe_limit = limit or settings.DEFAULT_PAGE_SIZE
    safe_limit = max(1, min(safe_limit, settings.MAX_PAGE_SIZE))
    return safe_page, safe_limit


def page_skip(page: int, limit: int) -> int:
    return (page - 1) * limit


def build_pagination(page: int, limit: int, total: int) -> dict:
    """Pagination envelope shared by every list endpoint."""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total": total,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
