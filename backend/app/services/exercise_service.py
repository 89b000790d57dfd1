from collections import defaultdict
from datetime import datetime
from typing import List, Optional, Tuple

from app.constants import ExerciseType
from app.exceptions import Conflict, Forbidden
from app.models import Exercise, User
from app.schemas import ExerciseCreate, ExerciseUpdate
from app.utils.dates import as_utc, day_bounds, month_bounds, utcnow
from app.utils.ids import get_or_404
from app.utils.logger import get_logger

logger = get_logger("exercise_service")


def summarize(entries: List[Exercise]) -> dict:
    income = sum(e.calories for e in entries if e.type == ExerciseType.INCOME)
    expense = sum(e.calories for e in entries if e.type == ExerciseType.EXPENSE)
    return {"total_income": income, "total_expense": expense, "net": income - expense}


async def list_exercises(
    *,
    user: User,
    date: Optional[datetime] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Tuple[List[Exercise], dict]:
    """Entries of one day (default today) or of an inclusive day range."""
    if start_date is not None or end_date is not None:
        if start_date is None or end_date is None:
            raise Conflict("start_date and end_date must be given together")
        start, _ = day_bounds(start_date)
        _, end = day_bounds(end_date)
        if end <= start:
            raise Conflict("end_date must not be before start_date")
    else:
        start, end = day_bounds(date or utcnow())
    entries = (
        await Exercise.find(
            Exercise.user_id == user.id,
            Exercise.date >= start,
            Exercise.date < end,
        )
        .sort(+Exercise.date, +Exercise.time)
        .to_list()
    )
    return entries, summarize(entries)


async def calendar(*, user: User, year: int, month: int) -> dict:
    """Per-day totals for a calendar month, keyed by ISO date."""
    if not 1 <= month <= 12:
        raise Conflict("month must be between 1 and 12")
    start, end = month_bounds(year, month)
    entries = await Exercise.find(
        Exercise.user_id == user.id,
        Exercise.date >= start,
        Exercise.date < end,
    ).to_list()
    by_day = defaultdict(list)
    for entry in entries:
        by_day[as_utc(entry.date).date().isoformat()].append(entry)
    return {
        "year": year,
        "month": month,
        "days": {day: {**summarize(items), "count": len(items)} for day, items in sorted(by_day.items())},
        "summary": summarize(entries),
    }


async def get_own_exercise(*, exercise_id: str, user: User) -> Exercise:
    exercise = await get_or_404(Exercise, exercise_id, "Exercise")
    if exercise.user_id != user.id:
        raise Forbidden("You can only manage your own exercises")
    return exercise


async def create_exercise(*, user: User, data: ExerciseCreate) -> Exercise:
    exercise = Exercise(user_id=user.id, **data.model_dump())
    await exercise.insert()
    return exercise


async def update_exercise(*, exercise_id: str, user: User, data: ExerciseUpdate) -> Exercise:
    exercise = await get_own_exercise(exercise_id=exercise_id, user=user)
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(exercise, field, value)
    exercise.updated_at = utcnow()
    await exercise.save()
    return exercise


async def delete_exercise(*, exercise_id: str, user: User) -> None:
    exercise = await get_own_exercise(exercise_id=exercise_id, user=user)
    await exercise.delete()
