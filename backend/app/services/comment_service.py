from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from beanie import PydanticObjectId as OID
from beanie.operators import In

from app.constants import ContentType, NotificationType
from app.exceptions import Forbidden, NotFound
from app.models import Comment, Post, User
from app.models.moderation import ModeratedDocument
from app.schemas import CommentCreate
from app.security import ensure_owner_or_admin
from app.services.moderation_service import CONTENT_MODELS
from app.services.notification_service import notify
from app.services.realtime import Emitter
from app.utils.dates import utcnow
from app.utils.ids import get_or_404, to_oid
from app.utils.logger import get_logger
from app.utils.pagination import page_skip
from app.utils.serializers import user_brief
from app.utils.updates import apply_update

logger = get_logger("comment_service")

_TARGET_LABELS = {
    ContentType.POST: "Post",
    ContentType.BLOG: "Blog",
    ContentType.EVENT_POST: "Event post",
}


async def resolve_target(post_or_blog, post_type: ContentType) -> ModeratedDocument:
    """Load the commented document named by the (id, discriminator) pair."""
    model = CONTENT_MODELS[post_type]
    return await get_or_404(model, post_or_blog, _TARGET_LABELS[post_type])


async def create_comment(
    *,
    author: User,
    data: CommentCreate,
    emitter: Optional[Emitter] = None,
) -> Comment:
    """Top-level comment; a ``parent_comment`` turns it into a reply."""
    if data.parent_comment:
        return await reply_to_comment(
            comment_id=data.parent_comment,
            author=author,
            content=data.content,
            is_anonymous=data.is_anonymous,
            emitter=emitter,
        )

    target = await resolve_target(data.post_or_blog, data.post_type)
    comment = Comment(
        post_or_blog=target.id,
        post_type=data.post_type,
        author_id=author.id,
        content=data.content,
        is_anonymous=data.is_anonymous,
        medical_advice=data.medical_advice,
    )
    await comment.insert()

    await notify(
        emitter,
        recipient=target.author_id,
        sender=author.id,
        type=NotificationType.COMMENT_POST,
        post=target.id,
        post_type=data.post_type,
        comment=comment.id,
        sender_info=user_brief(author).model_dump(mode="json"),
    )
    return comment


async def reply_to_comment(
    *,
    comment_id: str,
    author: User,
    content: str,
    is_anonymous: bool = False,
    emitter: Optional[Emitter] = None,
) -> Comment:
    """Reply in the thread of ``comment_id``.

    Replies always hang off the root comment, so replying to a reply
    attaches to that reply's root.
    """
    parent = await get_or_404(Comment, comment_id, "Comment")
    root = parent
    if parent.parent_comment:
        root = await Comment.get(parent.parent_comment)
        if root is None:
            raise NotFound("Comment not found")

    reply = Comment(
        post_or_blog=parent.post_or_blog,
        post_type=parent.post_type,
        author_id=author.id,
        content=content,
        is_anonymous=is_anonymous,
        parent_comment=root.id,
    )
    await reply.insert()
    await apply_update(root, {"$addToSet": {"replies": reply.id}})

    sender_info = user_brief(author).model_dump(mode="json")
    await notify(
        emitter,
        recipient=parent.author_id,
        sender=author.id,
        type=NotificationType.REPLY_COMMENT,
        post=parent.post_or_blog,
        post_type=parent.post_type,
        comment=reply.id,
        sender_info=sender_info,
    )
    if parent.post_type == ContentType.POST:
        post = await Post.get(parent.post_or_blog)
        if post is not None and post.author_id != parent.author_id:
            await notify(
                emitter,
                recipient=post.author_id,
                sender=author.id,
                type=NotificationType.COMMENT_POST,
                post=post.id,
                post_type=ContentType.POST,
                comment=reply.id,
                sender_info=sender_info,
            )
    return reply


async def list_comments(
    *,
    post_or_blog: str,
    post_type: ContentType,
    page: int,
    limit: int,
) -> Tuple[List[Comment], Dict[OID, List[Comment]], int]:
    """Approved root comments of a target plus their approved replies (oldest first)."""
    target_id = to_oid(post_or_blog, _TARGET_LABELS[post_type])
    query = {
        "post_or_blog": target_id,
        "post_type": post_type.value,
        "parent_comment": None,
        "is_approved": True,
    }
    total = await Comment.find(query).count()
    roots = (
        await Comment.find(query)
        .sort(-Comment.created_at)
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    replies: Dict[OID, List[Comment]] = defaultdict(list)
    if roots:
        children = (
            await Comment.find(
                In(Comment.parent_comment, [r.id for r in roots]),
                Comment.is_approved == True,
            )
            .sort(+Comment.created_at)
            .to_list()
        )
        for child in children:
            replies[child.parent_comment].append(child)
    return roots, replies, total


async def update_comment(*, comment_id: str, user: User, content: str) -> Comment:
    comment = await get_or_404(Comment, comment_id, "Comment")
    if comment.author_id != user.id:
        raise Forbidden("You can only edit your own comments")
    if not await apply_update(comment, {"$set": {"content": content, "updated_at": utcnow()}}):
        raise NotFound("Comment not found")
    return comment


async def delete_comment(*, comment_id: str, user: User) -> int:
    """Delete a comment; deleting a root also deletes its replies.

    Returns the number of removed comments.
    """
    comment = await get_or_404(Comment, comment_id, "Comment")
    ensure_owner_or_admin(user, comment.author_id, "delete this comment")

    if comment.parent_comment:
        await Comment.find_one({"_id": comment.parent_comment}).update(
            {"$pull": {"replies": comment.id}}
        )
    cascade = await Comment.find({"parent_comment": comment.id}).delete()
    await comment.delete()
    removed = 1 + (cascade.deleted_count if cascade else 0)
    logger.info(f"Comment {comment.id} deleted by {user.id} ({removed} removed)")
    return removed
