from fastapi import APIRouter

from app.services import stats_service

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("")
async def public_stats():
    """Counters shown on the landing page; no auth required."""
    return {"message": "Stats retrieved", "stats": await stats_service.get_public_stats()}
