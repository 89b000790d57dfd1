from typing import List, Tuple

from app.models import Comment, Event, EventPost, User
from app.schemas import EventPostCreate
from app.security import ensure_owner_or_admin
from app.utils.ids import get_or_404, to_oid
from app.utils.logger import get_logger
from app.utils.pagination import page_skip

logger = get_logger("event_post_service")


async def create_event_post(*, author: User, data: EventPostCreate) -> EventPost:
    event = await get_or_404(Event, data.event_id, "Event")
    post = EventPost(
        event_id=event.id,
        author_id=author.id,
        title=data.title,
        content=data.content,
        images=data.images,
    )
    await post.insert()
    logger.info(f"Event post {post.id} created on event {event.id} by {author.id}")
    return post


async def get_event_post(post_id: str) -> EventPost:
    return await get_or_404(EventPost, post_id, "Event post")


async def list_event_posts(*, event_id: str, page: int, limit: int) -> Tuple[List[EventPost], int]:
    eid = to_oid(event_id, "Event")
    query = {"event_id": eid, "is_approved": True}
    total = await EventPost.find(query).count()
    posts = (
        await EventPost.find(query)
        .sort(-EventPost.created_at)
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    return posts, total


async def delete_event_post(*, post_id: str, user: User) -> None:
    post = await get_event_post(post_id)
    ensure_owner_or_admin(user, post.author_id, "delete this post")
    await Comment.find(Comment.post_or_blog == post.id).delete()
    await post.delete()
