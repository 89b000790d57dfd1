from beanie import Indexed
from beanie import PydanticObjectId as OID
from pydantic import Field
from typing import List, Optional

from app.constants import ContentType
from app.models.moderation import ModeratedDocument


class Comment(ModeratedDocument):
    """Comment on a post, blog or event post.

    Threads are one level deep: ``parent_comment`` always points at a root
    comment and the root keeps the ids of its replies.
    """

    post_or_blog: Indexed(OID)
    post_type: ContentType = ContentType.POST
    author_id: Indexed(OID)
    content: str = Field(..., max_length=1000)
    is_anonymous: bool = False
    is_helpful: bool = False
    medical_advice: bool = False
    parent_comment: Optional[OID] = None
    replies: List[OID] = Field(default_factory=list)

    class Settings:
        name = "comments"
