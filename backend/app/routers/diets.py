from typing import Optional

from fastapi import APIRouter, status

from app.deps import CurrentUser
from app.models import Diet, User
from app.schemas import CompletionIn, DietCreate, DietUpdate
from app.services import diet_service
from app.utils.dates import utcnow
from app.utils.serializers import diet_out

router = APIRouter(prefix="/diets", tags=["diets"])


def _out(diet: Diet):
    return diet_out(diet, completed_today=diet_service.completed_on(diet, utcnow()))


@router.get("")
async def list_diets(is_active: Optional[bool] = None, current: User = CurrentUser):
    diets = await diet_service.list_diets(user=current, is_active=is_active)
    return {"message": "Diets retrieved", "diets": [_out(d) for d in diets]}


@router.get("/stats")
async def diet_stats(current: User = CurrentUser):
    return {"message": "Diet stats", "stats": await diet_service.diet_stats(user=current)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_diet(payload: DietCreate, current: User = CurrentUser):
    diet = await diet_service.create_diet(user=current, data=payload)
    return {"message": "Diet created successfully", "diet": _out(diet)}


@router.put("/{diet_id}")
async def update_diet(diet_id: str, payload: DietUpdate, current: User = CurrentUser):
    diet = await diet_service.update_diet(diet_id=diet_id, user=current, data=payload)
    return {"message": "Diet updated successfully", "diet": _out(diet)}


@router.delete("/{diet_id}")
async def delete_diet(diet_id: str, current: User = CurrentUser):
    await diet_service.delete_diet(diet_id=diet_id, user=current)
    return {"message": "Diet deleted successfully"}


@router.post("/{diet_id}/complete")
async def complete_diet(diet_id: str, payload: Optional[CompletionIn] = None, current: User = CurrentUser):
    """At most one completion per UTC day."""
    diet = await diet_service.complete_diet(
        diet_id=diet_id, user=current, notes=payload.notes if payload else None
    )
    return {"message": "Diet marked as completed", "diet": _out(diet)}


@router.patch("/{diet_id}/toggle")
async def toggle_diet(diet_id: str, current: User = CurrentUser):
    diet = await diet_service.toggle_diet(diet_id=diet_id, user=current)
    state = "activated" if diet.is_active else "deactivated"
    return {"message": f"Diet {state}", "diet": _out(diet)}
