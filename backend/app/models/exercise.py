from beanie import Document, Indexed
from beanie import PydanticObjectId as OID
from pydantic import Field
from datetime import datetime, timezone
from typing import Optional

from app.constants import ExerciseType


class Exercise(Document):
    """Calorie log entry; ``type`` says whether calories were gained or burnt."""
    user_id: Indexed(OID)
    title: str = Field(..., max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    duration: int = Field(0, ge=0)  # minutes
    calories: int = Field(..., ge=0)
    type: ExerciseType
    date: Indexed(datetime)
    time: Optional[str] = Field(None, pattern=r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "exercises"
