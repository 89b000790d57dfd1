from beanie import Document, Indexed
from beanie import PydanticObjectId as OID
from pydantic import Field
from datetime import datetime, timezone
from typing import Dict, List, Optional


def conversation_key(a: OID, b: OID) -> str:
    """Canonical key for the unordered pair (a, b)."""
    first, second = sorted([str(a), str(b)])
    return f"{first}:{second}"


class Conversation(Document):
    """One conversation per pair of users."""
    participants: List[OID]
    participants_key: Indexed(str, unique=True)
    last_message: Optional[OID] = None
    # user id (str) -> unread message count
    unread_counts: Dict[str, int] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Indexed(datetime) = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "conversations"

    def unread_for(self, user_id: OID) -> int:
        return self.unread_counts.get(str(user_id), 0)

    def other_participant(self, user_id: OID) -> Optional[OID]:
        return next((p for p in self.participants if p != user_id), None)


class Message(Document):
    """Direct message persisted before any real-time delivery."""
    conversation_id: Indexed(OID)
    sender: Indexed(OID)
    receiver: Indexed(OID)
    content: str = Field(..., max_length=2000)
    is_read: bool = False
    created_at: Indexed(datetime) = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "messages"
