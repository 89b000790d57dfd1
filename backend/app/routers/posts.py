from typing import List, Optional

from fastapi import APIRouter, status

from app.constants import PostCategory
from app.deps import CurrentUser, OptionalUser, Page, Realtime
from app.models import Post, User
from app.schemas import PostCreate, PostUpdate, ReportIn
from app.services import moderation_service, post_service
from app.utils.pagination import build_pagination
from app.utils.serializers import load_user_briefs, post_out

router = APIRouter(prefix="/posts", tags=["posts"])


async def _render(posts: List[Post], viewer: Optional[User]) -> list:
    briefs = await load_user_briefs(p.author_id for p in posts)
    counts = await post_service.comment_counts([p.id for p in posts])
    return [post_out(p, briefs, viewer, comment_count=counts.get(p.id, 0)) for p in posts]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(payload: PostCreate, current: User = CurrentUser):
    post = await post_service.create_post(author=current, data=payload)
    return {"message": "Post created successfully", "post": (await _render([post], current))[0]}


@router.get("")
async def list_posts(
    category: Optional[PostCategory] = None,
    author: Optional[str] = None,
    search: Optional[str] = None,
    paging=Page,
    viewer: Optional[User] = OptionalUser,
):
    page, limit = paging
    posts, total = await post_service.list_posts(
        page=page, limit=limit, category=category, author_id=author, search=search
    )
    return {
        "message": "Posts retrieved",
        "posts": await _render(posts, viewer),
        "pagination": build_pagination(page, limit, total),
        "trend_categories": await post_service.trend_categories(),
    }


@router.get("/user/{user_id}")
async def posts_by_user(user_id: str, paging=Page, viewer: Optional[User] = OptionalUser):
    page, limit = paging
    posts, total = await post_service.list_posts(page=page, limit=limit, author_id=user_id)
    return {
        "message": "Posts retrieved",
        "posts": await _render(posts, viewer),
        "pagination": build_pagination(page, limit, total),
    }


@router.get("/{post_id}")
async def get_post(post_id: str, viewer: Optional[User] = OptionalUser):
    """Counts the view and suggests recent and similar posts."""
    post = await post_service.view_post(post_id)
    recent = await post_service.recent_posts(post)
    similar = await post_service.similar_posts(post)
    return {
        "message": "Post retrieved",
        "post": (await _render([post], viewer))[0],
        "recent_posts": await _render(recent, viewer),
        "similar_posts": await _render(similar, viewer),
    }


@router.put("/{post_id}")
async def update_post(post_id: str, payload: PostUpdate, current: User = CurrentUser):
    post = await post_service.update_post(post_id=post_id, user=current, data=payload)
    return {"message": "Post updated successfully", "post": (await _render([post], current))[0]}


@router.delete("/{post_id}")
async def delete_post(post_id: str, current: User = CurrentUser):
    await post_service.delete_post(post_id=post_id, user=current)
    return {"message": "Post deleted successfully"}


@router.post("/{post_id}/like")
async def like_post(post_id: str, current: User = CurrentUser, emitter=Realtime):
    post = await post_service.get_post(post_id)
    liked = await moderation_service.like(post, actor=current, emitter=emitter)
    return {
        "message": "Post liked" if liked else "Post unliked",
        "like_count": len(post.likes),
        "dislike_count": len(post.dislikes),
        "is_liked": liked,
    }


@router.post("/{post_id}/dislike")
async def dislike_post(post_id: str, current: User = CurrentUser):
    post = await post_service.get_post(post_id)
    disliked = await moderation_service.dislike(post, actor=current)
    return {
        "message": "Post disliked" if disliked else "Post undisliked",
        "like_count": len(post.likes),
        "dislike_count": len(post.dislikes),
        "is_disliked": disliked,
    }


@router.post("/{post_id}/report")
async def report_post(post_id: str, payload: ReportIn, current: User = CurrentUser):
    post = await post_service.get_post(post_id)
    await moderation_service.report(
        post, actor=current, reason=payload.reason, description=payload.description
    )
    return {"message": "Post reported successfully", "report_count": post.report_count}
