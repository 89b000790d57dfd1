from beanie import Indexed
from beanie import PydanticObjectId as OID
from pydantic import Field
from typing import List

from app.constants import PostCategory
from app.models.moderation import ModeratedDocument


class Post(ModeratedDocument):
    """Community post (question, experience, success story)."""

    author_id: Indexed(OID)
    title: str = Field(..., max_length=200)
    content: str = Field(..., max_length=5000)
    category: PostCategory
    tags: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    is_anonymous: bool = False
    is_sensitive: bool = False
    views: int = 0
    medical_advice: bool = False
    symptoms: List[str] = Field(default_factory=list)
    treatments: List[str] = Field(default_factory=list)
    slug: Indexed(str, unique=True)

    class Settings:
        name = "posts"
