from typing import List, Optional

from app.exceptions import AlreadyCompleted, Forbidden
from app.models import Completion, Diet, User
from app.schemas import DietCreate, DietUpdate
from app.utils.dates import as_utc, day_bounds, utcnow
from app.utils.ids import get_or_404
from app.utils.logger import get_logger

logger = get_logger("diet_service")


def completed_on(diet: Diet, day) -> bool:
    """True when ``diet`` has a completion inside the UTC day of ``day``."""
    start, end = day_bounds(day)
    return any(start <= as_utc(c.completed_at) < end for c in diet.completion_history)


async def list_diets(*, user: User, is_active: Optional[bool] = None) -> List[Diet]:
    query: dict = {"user_id": user.id}
    if is_active is not None:
        query["is_active"] = is_active
    return await Diet.find(query).sort(-Diet.created_at).to_list()


async def get_own_diet(*, diet_id: str, user: User) -> Diet:
    diet = await get_or_404(Diet, diet_id, "Diet")
    if diet.user_id != user.id:
        raise Forbidden("You can only manage your own diets")
    return diet


async def diet_stats(*, user: User) -> dict:
    diets = await Diet.find(Diet.user_id == user.id).to_list()
    now = utcnow()
    return {
        "total_diets": len(diets),
        "active_diets": sum(1 for d in diets if d.is_active),
        "total_completions": sum(d.completed_count for d in diets),
        "completed_today": sum(1 for d in diets if completed_on(d, now)),
    }


async def create_diet(*, user: User, data: DietCreate) -> Diet:
    fields = data.model_dump(exclude_none=True)
    diet = Diet(user_id=user.id, **fields)
    await diet.insert()
    return diet


async def update_diet(*, diet_id: str, user: User, data: DietUpdate) -> Diet:
    diet = await get_own_diet(diet_id=diet_id, user=user)
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(diet, field, value)
    diet.updated_at = utcnow()
    await diet.save()
    return diet


async def delete_diet(*, diet_id: str, user: User) -> None:
    diet = await get_own_diet(diet_id=diet_id, user=user)
    await diet.delete()


async def complete_diet(*, diet_id: str, user: User, notes: Optional[str] = None) -> Diet:
    """Record today's completion; a diet completes at most once per UTC day."""
    diet = await get_own_diet(diet_id=diet_id, user=user)
    now = utcnow()
    if completed_on(diet, now):
        raise AlreadyCompleted()
    diet.completion_history.append(Completion(completed_at=now, notes=notes))
    diet.completed_count = len(diet.completion_history)
    diet.updated_at = now
    await diet.save()
    logger.info(f"Diet {diet.id} completed by {user.id}")
    return diet


async def toggle_diet(*, diet_id: str, user: User) -> Diet:
    diet = await get_own_diet(diet_id=diet_id, user=user)
    diet.is_active = not diet.is_active
    diet.updated_at = utcnow()
    await diet.save()
    return diet
