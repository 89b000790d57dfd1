from collections import Counter
from datetime import timedelta
from typing import Dict

from app.constants import ApprovalStatus, ContentType, EventStatus, Role
from app.models import Blog, Comment, Disease, Event, EventPost, Post, User
from app.utils.dates import utcnow
from app.utils.logger import get_logger

logger = get_logger("stats_service")

DEFAULT_HAPPINESS = 98
RECENT_DAYS = 7


async def get_public_stats() -> Dict:
    """Landing-page counters."""
    doctors = await User.find(
        {
            "role": Role.DOCTOR.value,
            "is_active": True,
            "doctor_info.approval_status": ApprovalStatus.APPROVED.value,
        }
    ).count()
    active_users = await User.find(User.is_active == True).count()
    posts = await Post.find(Post.is_approved == True).to_list()

    commented = await Comment.find(
        {"post_type": ContentType.POST.value, "is_approved": True}
    ).to_list()
    answered_ids = {c.post_or_blog for c in commented}
    answered = sum(1 for p in posts if p.id in answered_ids)

    likes = sum(len(p.likes) for p in posts)
    dislikes = sum(len(p.dislikes) for p in posts)
    if likes + dislikes:
        happiness = round(likes / (likes + dislikes) * 100)
    else:
        happiness = DEFAULT_HAPPINESS

    return {
        "doctors": doctors,
        "active_users": active_users,
        "answered_questions": answered,
        "happiness_ratio": happiness,
        "total_posts": len(posts),
    }


async def get_dashboard_stats() -> Dict:
    """Admin dashboard: totals, moderation queues and last week's activity."""
    since = utcnow() - timedelta(days=RECENT_DAYS)
    users = await User.find_all().to_list()
    roles = Counter(u.role.value for u in users)

    return {
        "users": {
            "total": len(users),
            "active": sum(1 for u in users if u.is_active),
            "patients": roles.get(Role.PATIENT.value, 0),
            "doctors": roles.get(Role.DOCTOR.value, 0),
            "admins": roles.get(Role.ADMIN.value, 0),
            "pending_doctors": sum(
                1
                for u in users
                if u.role == Role.DOCTOR and u.approval_status == ApprovalStatus.PENDING
            ),
        },
        "content": {
            "posts": await Post.find_all().count(),
            "blogs": await Blog.find_all().count(),
            "comments": await Comment.find_all().count(),
            "events": await Event.find_all().count(),
            "event_posts": await EventPost.find_all().count(),
            "diseases": await Disease.find_all().count(),
        },
        "moderation": {
            "pending_posts": await Post.find(Post.is_approved == False).count(),
            "pending_blogs": await Blog.find(Blog.is_approved == False).count(),
            "pending_comments": await Comment.find(Comment.is_approved == False).count(),
            "pending_events": await Event.find(Event.status == EventStatus.PENDING).count(),
            "reported_posts": await Post.find(Post.is_reported == True).count(),
            "reported_blogs": await Blog.find(Blog.is_reported == True).count(),
            "reported_comments": await Comment.find(Comment.is_reported == True).count(),
            "reported_event_posts": await EventPost.find(EventPost.is_reported == True).count(),
            "reported_events": await Event.find(Event.is_reported == True).count(),
        },
        "recent": {
            "days": RECENT_DAYS,
            "users": await User.find(User.created_at >= since).count(),
            "posts": await Post.find(Post.created_at >= since).count(),
            "blogs": await Blog.find(Blog.created_at >= since).count(),
            "comments": await Comment.find(Comment.created_at >= since).count(),
            "events": await Event.find(Event.created_at >= since).count(),
        },
    }


async def get_category_stats() -> Dict:
    """Per-category counts for posts, blogs and events."""

    def rows(items, key: str):
        return [{key: c, "count": n} for c, n in Counter(items).most_common()]

    posts = await Post.find_all().to_list()
    blogs = await Blog.find_all().to_list()
    events = await Event.find_all().to_list()
    return {
        "posts": rows((p.category.value for p in posts), "category"),
        "blogs": rows((b.category.value for b in blogs), "category"),
        "events": rows((e.category.value for e in events), "category"),
    }
