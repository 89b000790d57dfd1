from beanie import Document, Indexed
from beanie import PydanticObjectId as OID
from pydantic import Field
from datetime import datetime, timezone
from typing import List, Optional

from app.constants import DiseaseCategory, Prevalence, Severity


class Disease(Document):
    """Catalogue entry users can attach to their medical conditions."""
    name: Indexed(str, unique=True)
    description: str = Field(..., max_length=2000)
    category: DiseaseCategory
    symptoms: List[str] = Field(default_factory=list)
    common_treatments: List[str] = Field(default_factory=list)
    severity: Severity = Severity.MEDIUM
    prevalence: Prevalence = Prevalence.COMMON
    tags: List[str] = Field(default_factory=list)
    is_active: bool = True
    created_by: Optional[OID] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "diseases"
