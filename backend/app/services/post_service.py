from collections import Counter
from typing import List, Optional, Tuple

from beanie import PydanticObjectId as OID

from app.constants import PostCategory
from app.exceptions import NotFound
from app.models import Comment, Post, User
from app.schemas import PostCreate, PostUpdate
from app.security import ensure_owner_or_admin
from app.services.moderation_service import ensure_can_publish
from app.utils.dates import utcnow
from app.utils.ids import get_or_404, to_oid
from app.utils.logger import get_logger
from app.utils.pagination import page_skip
from app.utils.text import contains_pattern, unique_slug
from app.utils.updates import apply_update

logger = get_logger("post_service")

RELATED_LIMIT = 3
TREND_LIMIT = 10


async def create_post(*, author: User, data: PostCreate) -> Post:
    """Create a post; doctors must be approved at the time of writing."""
    await ensure_can_publish(author)
    post = Post(
        author_id=author.id,
        slug=await unique_slug(Post, data.title),
        **data.model_dump(),
    )
    await post.insert()
    logger.info(f"Post {post.id} created by {author.id}")
    return post


def _list_filter(
    category: Optional[PostCategory] = None,
    author_id: Optional[str] = None,
    search: Optional[str] = None,
) -> dict:
    query: dict = {"is_approved": True}
    if category:
        query["category"] = category.value
    if author_id:
        query["author_id"] = to_oid(author_id, "Author")
    if search:
        pattern = contains_pattern(search)
        query["$or"] = [{"title": pattern}, {"content": pattern}, {"tags": pattern}]
    return query


async def list_posts(
    *,
    page: int,
    limit: int,
    category: Optional[PostCategory] = None,
    author_id: Optional[str] = None,
    search: Optional[str] = None,
) -> Tuple[List[Post], int]:
    query = _list_filter(category, author_id, search)
    total = await Post.find(query).count()
    posts = (
        await Post.find(query)
        .sort(-Post.created_at)
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    return posts, total


async def trend_categories(limit: int = TREND_LIMIT) -> List[dict]:
    """Most used categories among approved posts."""
    rows = await Post.find(Post.is_approved == True).aggregate(
        [
            {"$group": {"_id": "$category", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
            {"$limit": limit},
        ]
    ).to_list()
    return [{"category": r["_id"], "count": r["count"]} for r in rows]


async def get_post(post_id: str) -> Post:
    return await get_or_404(Post, post_id, "Post")


async def view_post(post_id: str) -> Post:
    """Fetch a post for display and count the view."""
    post = await get_post(post_id)
    if not await apply_update(post, {"$inc": {"views": 1}}):
        raise NotFound("Post not found")
    return post


async def recent_posts(post: Post, limit: int = RELATED_LIMIT) -> List[Post]:
    return (
        await Post.find({"is_approved": True, "_id": {"$ne": post.id}})
        .sort(-Post.created_at)
        .limit(limit)
        .to_list()
    )


async def similar_posts(post: Post, limit: int = RELATED_LIMIT) -> List[Post]:
    """Posts sharing the category or tags, ranked by category match + shared tag count."""
    query: dict = {
        "is_approved": True,
        "_id": {"$ne": post.id},
        "$or": [{"category": post.category.value}],
    }
    if post.tags:
        query["$or"].append({"tags": {"$in": post.tags}})
    candidates = await Post.find(query).sort(-Post.created_at).limit(50).to_list()

    tags = set(post.tags)

    def score(other: Post) -> int:
        return int(other.category == post.category) + len(tags & set(other.tags))

    ranked = sorted(candidates, key=score, reverse=True)
    return ranked[:limit]


async def update_post(*, post_id: str, user: User, data: PostUpdate) -> Post:
    post = await get_post(post_id)
    ensure_owner_or_admin(user, post.author_id, "update this post")
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "title" in changes and changes["title"] != post.title:
        changes["slug"] = await unique_slug(Post, changes["title"], exclude_id=post.id)
    changes["updated_at"] = utcnow()
    if not await apply_update(post, {"$set": changes}):
        raise NotFound("Post not found")
    return post


async def delete_post(*, post_id: str, user: User) -> None:
    """Delete a post together with every comment on it."""
    post = await get_post(post_id)
    ensure_owner_or_admin(user, post.author_id, "delete this post")
    await Comment.find(Comment.post_or_blog == post.id).delete()
    await post.delete()
    logger.info(f"Post {post.id} deleted by {user.id}")


async def comment_counts(post_ids: List[OID]) -> Counter:
    if not post_ids:
        return Counter()
    comments = await Comment.find(
        {"post_or_blog": {"$in": post_ids}, "is_approved": True}
    ).to_list()
    return Counter(c.post_or_blog for c in comments)
