from typing import List, Optional

from fastapi import APIRouter, status

from app.constants import BlogCategory
from app.deps import CurrentUser, OptionalUser, Page, Realtime
from app.models import Blog, User
from app.schemas import BlogCreate, BlogUpdate, ReportIn
from app.services import blog_service, moderation_service, post_service
from app.utils.pagination import build_pagination
from app.utils.serializers import blog_out, load_user_briefs

router = APIRouter(prefix="/blogs", tags=["blogs"])


async def _render(blogs: List[Blog], viewer: Optional[User]) -> list:
    briefs = await load_user_briefs(b.author_id for b in blogs)
    counts = await post_service.comment_counts([b.id for b in blogs])
    return [blog_out(b, briefs, viewer, comment_count=counts.get(b.id, 0)) for b in blogs]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_blog(payload: BlogCreate, current: User = CurrentUser):
    blog = await blog_service.create_blog(author=current, data=payload)
    return {"message": "Blog created successfully", "blog": (await _render([blog], current))[0]}


@router.get("")
async def list_blogs(
    category: Optional[BlogCategory] = None,
    author: Optional[str] = None,
    search: Optional[str] = None,
    published: Optional[bool] = None,
    paging=Page,
    viewer: Optional[User] = OptionalUser,
):
    """``published`` is honoured for admins only."""
    page, limit = paging
    blogs, total = await blog_service.list_blogs(
        viewer=viewer,
        page=page,
        limit=limit,
        category=category,
        author_id=author,
        search=search,
        published=published,
    )
    return {
        "message": "Blogs retrieved",
        "blogs": await _render(blogs, viewer),
        "pagination": build_pagination(page, limit, total),
    }


@router.get("/featured")
async def featured_blogs(viewer: Optional[User] = OptionalUser):
    blogs = await blog_service.featured_blogs()
    return {"message": "Featured blogs", "blogs": await _render(blogs, viewer)}


@router.get("/categories")
async def blog_categories():
    return {"message": "Blog categories", "categories": await blog_service.blog_categories()}


@router.get("/user/{user_id}")
async def blogs_by_user(user_id: str, paging=Page, viewer: Optional[User] = OptionalUser):
    page, limit = paging
    blogs, total = await blog_service.user_blogs(user_id=user_id, viewer=viewer, page=page, limit=limit)
    return {
        "message": "Blogs retrieved",
        "blogs": await _render(blogs, viewer),
        "pagination": build_pagination(page, limit, total),
    }


@router.get("/{id_or_slug}")
async def get_blog(id_or_slug: str, viewer: Optional[User] = OptionalUser):
    blog = await blog_service.view_blog(id_or_slug=id_or_slug, viewer=viewer)
    return {"message": "Blog retrieved", "blog": (await _render([blog], viewer))[0]}


@router.put("/{blog_id}")
async def update_blog(blog_id: str, payload: BlogUpdate, current: User = CurrentUser):
    blog = await blog_service.update_blog(blog_id=blog_id, user=current, data=payload)
    return {"message": "Blog updated successfully", "blog": (await _render([blog], current))[0]}


@router.delete("/{blog_id}")
async def delete_blog(blog_id: str, current: User = CurrentUser):
    await blog_service.delete_blog(blog_id=blog_id, user=current)
    return {"message": "Blog deleted successfully"}


@router.post("/{blog_id}/like")
async def like_blog(blog_id: str, current: User = CurrentUser, emitter=Realtime):
    blog = await blog_service.get_blog(blog_id)
    liked = await moderation_service.like(blog, actor=current, emitter=emitter)
    return {
        "message": "Blog liked" if liked else "Blog unliked",
        "like_count": len(blog.likes),
        "dislike_count": len(blog.dislikes),
        "is_liked": liked,
    }


@router.post("/{blog_id}/dislike")
async def dislike_blog(blog_id: str, current: User = CurrentUser):
    blog = await blog_service.get_blog(blog_id)
    disliked = await moderation_service.dislike(blog, actor=current)
    return {
        "message": "Blog disliked" if disliked else "Blog undisliked",
        "like_count": len(blog.likes),
        "dislike_count": len(blog.dislikes),
        "is_disliked": disliked,
    }


@router.post("/{blog_id}/report")
async def report_blog(blog_id: str, payload: ReportIn, current: User = CurrentUser):
    blog = await blog_service.get_blog(blog_id)
    await moderation_service.report(
        blog, actor=current, reason=payload.reason, description=payload.description
    )
    return {"message": "Blog reported successfully", "report_count": blog.report_count}
