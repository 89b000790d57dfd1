from beanie import Indexed, Insert, Replace, Save, before_event
from beanie import PydanticObjectId as OID
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import List, Optional

from app.constants import EventCategory, EventStatus, OrganizerType, ParticipantStatus
from app.models.moderation import ReportableDocument


class Participant(BaseModel):
    user_id: OID
    registration_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: ParticipantStatus = ParticipantStatus.CONFIRMED
    notes: Optional[str] = Field(None, max_length=500)


class Event(ReportableDocument):
    """Capacity-bounded event (workshop, seminar, meetup).

    ``current_participants`` is a cache of the confirmed participant count. It
    is recomputed whenever the document is written whole and moves together
    with ``participants`` in operator updates.
    """

    title: str = Field(..., max_length=200)
    description: str = Field(..., max_length=2000)
    category: EventCategory
    instructor: Optional[str] = None
    instructor_title: Optional[str] = None
    date: Indexed(datetime)
    end_date: datetime
    location: str
    location_address: Optional[str] = None
    max_participants: int = Field(..., ge=1, le=1000)
    current_participants: int = 0
    price: float = Field(0, ge=0)
    is_online: bool = False
    is_external: bool = False
    organizer: Optional[str] = None
    organizer_type: OrganizerType = OrganizerType.INDIVIDUAL
    tags: List[str] = Field(default_factory=list)
    requirements: Optional[str] = None
    image: Optional[str] = None

    status: EventStatus = EventStatus.PENDING
    author_id: Indexed(OID)
    approved_by: Optional[OID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = Field(None, max_length=500)

    participants: List[Participant] = Field(default_factory=list)

    class Settings:
        name = "events"

    @before_event([Insert, Replace, Save])
    def sync_participant_count(self):
        self.current_participants = len(self.confirmed_participants())

    def confirmed_participants(self) -> List[Participant]:
        return [p for p in self.participants if p.status == ParticipantStatus.CONFIRMED]

    def is_registered(self, user_id: OID) -> bool:
        return any(p.user_id == user_id for p in self.confirmed_participants())

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants
