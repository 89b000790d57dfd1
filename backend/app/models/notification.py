from beanie import Document, Indexed
from beanie import PydanticObjectId as OID
from pydantic import Field
from datetime import datetime, timezone
from typing import Optional

from app.constants import ContentType, NotificationType


class Notification(Document):
    """In-app notification; only ``is_read`` changes after creation."""
    recipient: Indexed(OID)
    sender: OID
    type: NotificationType
    post: Optional[OID] = None
    post_type: Optional[ContentType] = None
    comment: Optional[OID] = None
    is_read: bool = False
    created_at: Indexed(datetime) = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "notifications"
