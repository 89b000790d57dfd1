from typing import Optional

from fastapi import APIRouter, status

from app.deps import CurrentUser, OptionalUser, Page, Realtime
from app.models import User
from app.schemas import EventPostCreate, ReportIn
from app.services import event_post_service, moderation_service
from app.utils.pagination import build_pagination
from app.utils.serializers import event_post_out, load_user_briefs

router = APIRouter(prefix="/event-posts", tags=["event-posts"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_event_post(payload: EventPostCreate, current: User = CurrentUser):
    post = await event_post_service.create_event_post(author=current, data=payload)
    briefs = await load_user_briefs([post.author_id])
    return {"message": "Event post created successfully", "post": event_post_out(post, briefs, current)}


@router.get("/event/{event_id}")
async def list_event_posts(event_id: str, paging=Page, viewer: Optional[User] = OptionalUser):
    page, limit = paging
    posts, total = await event_post_service.list_event_posts(event_id=event_id, page=page, limit=limit)
    briefs = await load_user_briefs(p.author_id for p in posts)
    return {
        "message": "Event posts retrieved",
        "posts": [event_post_out(p, briefs, viewer) for p in posts],
        "pagination": build_pagination(page, limit, total),
    }


@router.delete("/{post_id}")
async def delete_event_post(post_id: str, current: User = CurrentUser):
    await event_post_service.delete_event_post(post_id=post_id, user=current)
    return {"message": "Event post deleted successfully"}


@router.post("/{post_id}/like")
async def like_event_post(post_id: str, current: User = CurrentUser, emitter=Realtime):
    post = await event_post_service.get_event_post(post_id)
    liked = await moderation_service.like(post, actor=current, emitter=emitter)
    return {
        "message": "Post liked" if liked else "Post unliked",
        "like_count": len(post.likes),
        "dislike_count": len(post.dislikes),
        "is_liked": liked,
    }


@router.post("/{post_id}/dislike")
async def dislike_event_post(post_id: str, current: User = CurrentUser):
    post = await event_post_service.get_event_post(post_id)
    disliked = await moderation_service.dislike(post, actor=current)
    return {
        "message": "Post disliked" if disliked else "Post undisliked",
        "like_count": len(post.likes),
        "dislike_count": len(post.dislikes),
        "is_disliked": disliked,
    }


@router.post("/{post_id}/report")
async def report_event_post(post_id: str, payload: ReportIn, current: User = CurrentUser):
    post = await event_post_service.get_event_post(post_id)
    await moderation_service.report(
        post, actor=current, reason=payload.reason, description=payload.description
    )
    return {"message": "Post reported successfully", "report_count": post.report_count}
