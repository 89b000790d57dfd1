from beanie import Document, Indexed
from beanie import PydanticObjectId as OID
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import List, Optional

from app.constants import DietPeriod


class Completion(BaseModel):
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    notes: Optional[str] = Field(None, max_length=500)


class Diet(Document):
    """Recurring diet/habit a user tracks completions for."""
    user_id: Indexed(OID)
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    duration: Optional[int] = Field(None, ge=1)  # minutes
    period: DietPeriod = DietPeriod.DAILY
    custom_period: Optional[str] = None
    is_active: bool = True
    start_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    end_date: Optional[datetime] = None
    completed_count: int = 0
    completion_history: List[Completion] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "diets"
