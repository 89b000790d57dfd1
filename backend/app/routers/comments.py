from typing import Optional

from fastapi import APIRouter, status

from app.constants import ContentType
from app.deps import CurrentUser, OptionalUser, Page, Realtime
from app.models import Comment, User
from app.schemas import CommentCreate, CommentUpdate, ReplyIn, ReportIn
from app.services import comment_service, moderation_service
from app.utils.ids import get_or_404
from app.utils.pagination import build_pagination
from app.utils.serializers import comment_out, load_user_briefs

router = APIRouter(prefix="/comments", tags=["comments"])


async def _single(comment: Comment, viewer: Optional[User]):
    briefs = await load_user_briefs([comment.author_id])
    return comment_out(comment, briefs, viewer)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_comment(payload: CommentCreate, current: User = CurrentUser, emitter=Realtime):
    comment = await comment_service.create_comment(author=current, data=payload, emitter=emitter)
    return {"message": "Comment created successfully", "comment": await _single(comment, current)}


@router.get("/{post_type}/{post_or_blog}")
async def list_comments(
    post_type: ContentType,
    post_or_blog: str,
    paging=Page,
    viewer: Optional[User] = OptionalUser,
):
    """Root comments of a post, blog or event post with their replies."""
    page, limit = paging
    roots, replies, total = await comment_service.list_comments(
        post_or_blog=post_or_blog, post_type=post_type, page=page, limit=limit
    )
    authors = [c.author_id for c in roots] + [r.author_id for rs in replies.values() for r in rs]
    briefs = await load_user_briefs(authors)
    return {
        "message": "Comments retrieved",
        "comments": [
            comment_out(
                root,
                briefs,
                viewer,
                replies=[comment_out(r, briefs, viewer) for r in replies.get(root.id, [])],
            )
            for root in roots
        ],
        "pagination": build_pagination(page, limit, total),
    }


@router.post("/{comment_id}/reply", status_code=status.HTTP_201_CREATED)
async def reply(comment_id: str, payload: ReplyIn, current: User = CurrentUser, emitter=Realtime):
    comment = await comment_service.reply_to_comment(
        comment_id=comment_id,
        author=current,
        content=payload.content,
        is_anonymous=payload.is_anonymous,
        emitter=emitter,
    )
    return {"message": "Reply added successfully", "comment": await _single(comment, current)}


@router.put("/{comment_id}")
async def update_comment(comment_id: str, payload: CommentUpdate, current: User = CurrentUser):
    comment = await comment_service.update_comment(
        comment_id=comment_id, user=current, content=payload.content
    )
    return {"message": "Comment updated successfully", "comment": await _single(comment, current)}


@router.delete("/{comment_id}")
async def delete_comment(comment_id: str, current: User = CurrentUser):
    removed = await comment_service.delete_comment(comment_id=comment_id, user=current)
    return {"message": "Comment deleted successfully", "deleted_count": removed}


@router.post("/{comment_id}/like")
async def like_comment(comment_id: str, current: User = CurrentUser, emitter=Realtime):
    comment = await get_or_404(Comment, comment_id, "Comment")
    liked = await moderation_service.like(comment, actor=current, emitter=emitter)
    return {
        "message": "Comment liked" if liked else "Comment unliked",
        "like_count": len(comment.likes),
        "dislike_count": len(comment.dislikes),
        "is_liked": liked,
    }


@router.post("/{comment_id}/dislike")
async def dislike_comment(comment_id: str, current: User = CurrentUser):
    comment = await get_or_404(Comment, comment_id, "Comment")
    disliked = await moderation_service.dislike(comment, actor=current)
    return {
        "message": "Comment disliked" if disliked else "Comment undisliked",
        "like_count": len(comment.likes),
        "dislike_count": len(comment.dislikes),
        "is_disliked": disliked,
    }


@router.post("/{comment_id}/report")
async def report_comment(comment_id: str, payload: ReportIn, current: User = CurrentUser):
    comment = await get_or_404(Comment, comment_id, "Comment")
    await moderation_service.report(
        comment, actor=current, reason=payload.reason, description=payload.description
    )
    return {"message": "Comment reported successfully", "report_count": comment.report_count}
