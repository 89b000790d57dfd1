from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query, status

from app.deps import CurrentUser
from app.models import User
from app.schemas import ExerciseCreate, ExerciseUpdate
from app.services import exercise_service
from app.utils.serializers import exercise_out

router = APIRouter(prefix="/exercises", tags=["exercises"])


@router.get("")
async def list_exercises(
    date: Optional[datetime] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    current: User = CurrentUser,
):
    """One day (default today) or an inclusive ``start_date``..``end_date`` range."""
    entries, summary = await exercise_service.list_exercises(
        user=current, date=date, start_date=start_date, end_date=end_date
    )
    return {
        "message": "Exercises retrieved",
        "exercises": [exercise_out(e) for e in entries],
        "summary": summary,
    }


@router.get("/calendar")
async def calendar(
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
    current: User = CurrentUser,
):
    data = await exercise_service.calendar(user=current, year=year, month=month)
    return {"message": "Calendar retrieved", **data}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_exercise(payload: ExerciseCreate, current: User = CurrentUser):
    exercise = await exercise_service.create_exercise(user=current, data=payload)
    return {"message": "Exercise created successfully", "exercise": exercise_out(exercise)}


@router.put("/{exercise_id}")
async def update_exercise(exercise_id: str, payload: ExerciseUpdate, current: User = CurrentUser):
    exercise = await exercise_service.update_exercise(exercise_id=exercise_id, user=current, data=payload)
    return {"message": "Exercise updated successfully", "exercise": exercise_out(exercise)}


@router.delete("/{exercise_id}")
async def delete_exercise(exercise_id: str, current: User = CurrentUser):
    await exercise_service.delete_exercise(exercise_id=exercise_id, user=current)
    return {"message": "Exercise deleted successfully"}
