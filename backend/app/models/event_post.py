from beanie import Indexed
from beanie import PydanticObjectId as OID
from pydantic import Field
from typing import List

from app.models.moderation import ModeratedDocument


class EventPost(ModeratedDocument):
    """Discussion post attached to an event."""

    event_id: Indexed(OID)
    author_id: Indexed(OID)
    title: str = Field(..., max_length=200)
    content: str = Field(..., max_length=5000)
    images: List[str] = Field(default_factory=list)

    class Settings:
        name = "event_posts"
