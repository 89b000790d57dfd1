from beanie import Indexed
from beanie import PydanticObjectId as OID
from pydantic import BaseModel, Field
from typing import List, Optional

from app.constants import BlogCategory, DEFAULT_MEDICAL_DISCLAIMER
from app.models.moderation import ModeratedDocument


class BlogReference(BaseModel):
    title: str
    url: str


class Blog(ModeratedDocument):
    """Long-form article written by an approved doctor or an admin."""

    author_id: Indexed(OID)
    title: str = Field(..., max_length=200)
    content: str
    excerpt: Optional[str] = Field(None, max_length=300)
    category: BlogCategory
    tags: List[str] = Field(default_factory=list)
    featured_image: Optional[str] = None
    is_published: bool = False
    is_featured: bool = False
    views: int = 0
    reading_time: int = 1
    medical_disclaimer: str = DEFAULT_MEDICAL_DISCLAIMER
    references: List[BlogReference] = Field(default_factory=list)
    seo_title: Optional[str] = Field(None, max_length=60)
    seo_description: Optional[str] = Field(None, max_length=160)
    slug: Indexed(str, unique=True)

    class Settings:
        name = "blogs"
