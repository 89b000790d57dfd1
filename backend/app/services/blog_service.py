from typing import List, Optional, Tuple

from beanie import PydanticObjectId as OID

from app.constants import BlogCategory, DEFAULT_MEDICAL_DISCLAIMER, Role
from app.exceptions import Forbidden, NotFound
from app.models import Blog, BlogReference, Comment, User
from app.schemas import BlogCreate, BlogUpdate
from app.security import ensure_owner_or_admin, is_admin
from app.services.moderation_service import ensure_doctor_approved
from app.utils.dates import utcnow
from app.utils.ids import get_or_404, to_oid
from app.utils.logger import get_logger
from app.utils.pagination import page_skip
from app.utils.text import contains_pattern, reading_time, unique_slug
from app.utils.updates import apply_update

logger = get_logger("blog_service")

FEATURED_LIMIT = 5


async def create_blog(*, author: User, data: BlogCreate) -> Blog:
    """Only admins and approved doctors may write blogs."""
    if author.role == Role.DOCTOR:
        await ensure_doctor_approved(author)
    elif author.role != Role.ADMIN:
        raise Forbidden("Only doctors and admins can write blogs")

    fields = data.model_dump(exclude={"references", "medical_disclaimer"})
    blog = Blog(
        author_id=author.id,
        slug=await unique_slug(Blog, data.title),
        reading_time=reading_time(data.content),
        medical_disclaimer=data.medical_disclaimer or DEFAULT_MEDICAL_DISCLAIMER,
        references=[BlogReference(**r.model_dump()) for r in data.references],
        **fields,
    )
    await blog.insert()
    logger.info(f"Blog {blog.id} created by {author.id}")
    return blog


async def list_blogs(
    *,
    viewer: Optional[User],
    page: int,
    limit: int,
    category: Optional[BlogCategory] = None,
    author_id: Optional[str] = None,
    search: Optional[str] = None,
    published: Optional[bool] = None,
) -> Tuple[List[Blog], int]:
    """Non-admins only ever see published, approved blogs."""
    query: dict = {}
    if is_admin(viewer):
        if published is not None:
            query["is_published"] = published
    else:
        query["is_published"] = True
        query["is_approved"] = True
    if category:
        query["category"] = category.value
    if author_id:
        query["author_id"] = to_oid(author_id, "Author")
    if search:
        pattern = contains_pattern(search)
        query["$or"] = [{"title": pattern}, {"content": pattern}, {"excerpt": pattern}, {"tags": pattern}]

    total = await Blog.find(query).count()
    blogs = (
        await Blog.find(query)
        .sort(-Blog.created_at)
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    return blogs, total


async def featured_blogs(limit: int = FEATURED_LIMIT) -> List[Blog]:
    return (
        await Blog.find(
            Blog.is_featured == True,
            Blog.is_published == True,
            Blog.is_approved == True,
        )
        .sort(-Blog.created_at)
        .limit(limit)
        .to_list()
    )


async def blog_categories() -> List[dict]:
    rows = await Blog.find(Blog.is_published == True, Blog.is_approved == True).aggregate(
        [
            {"$group": {"_id": "$category", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
        ]
    ).to_list()
    return [{"category": r["_id"], "count": r["count"]} for r in rows]


def _ensure_visible(blog: Blog, viewer: Optional[User]) -> None:
    if blog.is_published:
        return
    if viewer is not None and (viewer.id == blog.author_id or viewer.role == Role.ADMIN):
        return
    raise NotFound("Blog not found")


async def get_blog(blog_id: str) -> Blog:
    return await get_or_404(Blog, blog_id, "Blog")


async def view_blog(*, id_or_slug: str, viewer: Optional[User]) -> Blog:
    """Resolve by id first, then by slug; counts the view."""
    blog = await Blog.get(OID(id_or_slug)) if OID.is_valid(id_or_slug) else None
    if blog is None:
        blog = await Blog.find_one(Blog.slug == id_or_slug)
    if blog is None:
        raise NotFound("Blog not found")
    _ensure_visible(blog, viewer)
    if not await apply_update(blog, {"$inc": {"views": 1}}):
        raise NotFound("Blog not found")
    return blog


async def user_blogs(*, user_id: str, viewer: Optional[User], page: int, limit: int) -> Tuple[List[Blog], int]:
    author_id = to_oid(user_id, "User")
    query: dict = {"author_id": author_id}
    if not (viewer is not None and (viewer.id == author_id or viewer.role == Role.ADMIN)):
        query["is_published"] = True
        query["is_approved"] = True
    total = await Blog.find(query).count()
    blogs = (
        await Blog.find(query)
        .sort(-Blog.created_at)
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    return blogs, total


async def update_blog(*, blog_id: str, user: User, data: BlogUpdate) -> Blog:
    blog = await get_blog(blog_id)
    ensure_owner_or_admin(user, blog.author_id, "update this blog")
    changes = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"references"})
    if "title" in changes and changes["title"] != blog.title:
        changes["slug"] = await unique_slug(Blog, changes["title"], exclude_id=blog.id)
    if "content" in changes:
        changes["reading_time"] = reading_time(changes["content"])
    if "medical_disclaimer" in changes and not changes["medical_disclaimer"]:
        changes["medical_disclaimer"] = DEFAULT_MEDICAL_DISCLAIMER
    if data.references is not None:
        changes["references"] = [BlogReference(**r.model_dump()) for r in data.references]
    changes["updated_at"] = utcnow()
    if not await apply_update(blog, {"$set": changes}):
        raise NotFound("Blog not found")
    return blog


async def delete_blog(*, blog_id: str, user: User) -> None:
    blog = await get_blog(blog_id)
    ensure_owner_or_admin(user, blog.author_id, "delete this blog")
    await Comment.find(Comment.post_or_blog == blog.id).delete()
    await blog.delete()
    logger.info(f"Blog {blog.id} deleted by {user.id}")
