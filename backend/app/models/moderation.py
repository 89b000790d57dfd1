from beanie import Document, Insert, Replace, Save, before_event
from beanie import PydanticObjectId as OID
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import List, Optional

from app.constants import ReportReason


class Report(BaseModel):
    """A single user report embedded in the reported document."""

    user_id: OID
    reason: ReportReason
    description: Optional[str] = Field(None, max_length=500)
    reported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ReportableDocument(Document):
    """Base for documents that accept user reports.

    ``report_count`` and ``is_reported`` mirror ``reports``. They are recomputed
    whenever the document is written whole and move together with ``reports``
    in operator updates.
    """

    reports: List[Report] = Field(default_factory=list)
    report_count: int = 0
    is_reported: bool = False

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @before_event([Insert, Replace, Save])
    def sync_report_state(self):
        self.report_count = len(self.reports)
        self.is_reported = self.report_count > 0

    def has_reported(self, user_id: OID) -> bool:
        return any(r.user_id == user_id for r in self.reports)


class ModeratedDocument(ReportableDocument):
    """Base for likeable, approvable content (posts, blogs, event posts, comments)."""

    likes: List[OID] = Field(default_factory=list)
    dislikes: List[OID] = Field(default_factory=list)
    is_approved: bool = True
