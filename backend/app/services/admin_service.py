"""Admin moderation: accounts, doctors and content queues."""
from typing import Dict, List, Literal, Optional, Tuple, Type

from app.constants import ApprovalStatus, EventStatus, Role
from app.exceptions import Conflict, NotFound
from app.models import Blog, Comment, Event, EventPost, Post, User
from app.models.moderation import ModeratedDocument, ReportableDocument
from app.schemas import UserStatusUpdate
from app.services.moderation_service import clear_reports, set_approval
from app.utils.dates import utcnow
from app.utils.ids import get_or_404
from app.utils.logger import get_logger
from app.utils.pagination import page_skip
from app.utils.updates import apply_update

logger = get_logger("admin_service")

ContentKind = Literal["posts", "blogs", "comments", "event-posts"]
ReportableKind = Literal["posts", "blogs", "comments", "event-posts", "events"]

MODERATED_MODELS: Dict[str, Type[ModeratedDocument]] = {
    "posts": Post,
    "blogs": Blog,
    "comments": Comment,
    "event-posts": EventPost,
}
REPORTABLE_MODELS: Dict[str, Type[ReportableDocument]] = {**MODERATED_MODELS, "events": Event}

_LABELS = {
    "posts": "Post",
    "blogs": "Blog",
    "comments": "Comment",
    "event-posts": "Event post",
    "events": "Event",
}


async def update_user_status(*, user_id: str, admin: User, data: UserStatusUpdate) -> User:
    """Activate/deactivate, verify or change the role of an account."""
    user = await get_or_404(User, user_id, "User")
    if user.id == admin.id and (data.is_active is False or (data.role and data.role != Role.ADMIN)):
        raise Conflict("Admins cannot deactivate or demote themselves")
    changes: dict = {"updated_at": utcnow()}
    if data.is_active is not None:
        changes["is_active"] = data.is_active
    if data.is_verified is not None:
        changes["is_verified"] = data.is_verified
    if data.role is not None and data.role != user.role:
        user.apply_role(data.role)
        changes["role"] = user.role
        changes["doctor_info"] = user.doctor_info
    if not await apply_update(user, {"$set": changes}):
        raise NotFound("User not found")
    logger.info(f"User {user.id} updated by admin {admin.id}: {data.model_dump(exclude_none=True)}")
    return user


async def list_doctors(
    *,
    page: int,
    limit: int,
    status: Optional[ApprovalStatus] = None,
) -> Tuple[List[User], int]:
    query: dict = {"role": Role.DOCTOR.value}
    if status:
        query["doctor_info.approval_status"] = status.value
    total = await User.find(query).count()
    doctors = (
        await User.find(query)
        .sort(-User.created_at)
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    return doctors, total


async def set_content_approval(*, kind: ContentKind, item_id: str, is_approved: bool, admin: User):
    item = await get_or_404(MODERATED_MODELS[kind], item_id, _LABELS[kind])
    await set_approval(item, is_approved)
    logger.info(f"{_LABELS[kind]} {item.id} approval set to {is_approved} by {admin.id}")
    return item


async def clear_content_reports(*, kind: ReportableKind, item_id: str, admin: User):
    item = await get_or_404(REPORTABLE_MODELS[kind], item_id, _LABELS[kind])
    await clear_reports(item)
    logger.info(f"Reports on {_LABELS[kind]} {item.id} cleared by {admin.id}")
    return item


async def _queue(models: Dict[str, Type[ReportableDocument]], query: dict, limit: int) -> Dict[str, list]:
    queue = {}
    for kind, model in models.items():
        queue[kind] = (
            await model.find(query)
            .sort("-report_count", "-created_at")
            .limit(limit)
            .to_list()
        )
    return queue


async def reported_content(limit: int = 50) -> Dict[str, list]:
    """Reported items of every kind, most reported first."""
    return await _queue(REPORTABLE_MODELS, {"is_reported": True}, limit)


async def pending_content(limit: int = 50) -> Dict[str, list]:
    """Unapproved content items plus events awaiting a decision."""
    queue = await _queue(MODERATED_MODELS, {"is_approved": False}, limit)
    queue["events"] = (
        await Event.find(Event.status == EventStatus.PENDING).sort("+created_at").limit(limit).to_list()
    )
    return queue
