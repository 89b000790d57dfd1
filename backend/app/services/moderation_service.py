"""Reactions, reports and the doctor approval workflow."""
from typing import Optional, Type, Union

from beanie import PydanticObjectId as OID

from app.constants import (
    ApprovalStatus,
    ContentType,
    DEFAULT_REJECTION_REASON,
    NotificationType,
    ReportReason,
    Role,
)
from app.exceptions import (
    AlreadyApproved,
    AlreadyRejected,
    AlreadyReported,
    ApprovalRequired,
    Forbidden,
    NotADoctor,
    NotFound,
)
from app.models import Blog, Comment, EventPost, Post, Report, User, DoctorInfo
from app.models.moderation import ModeratedDocument, ReportableDocument
from app.services.notification_service import notify
from app.services.realtime import Emitter
from app.utils.dates import utcnow
from app.utils.ids import get_or_404
from app.utils.serializers import user_brief
from app.utils.logger import get_logger
from app.utils.updates import apply_update

logger = get_logger("moderation_service")

CONTENT_MODELS: dict[ContentType, Type[ModeratedDocument]] = {
    ContentType.POST: Post,
    ContentType.BLOG: Blog,
    ContentType.EVENT_POST: EventPost,
}


# ------------------------ Like / dislike ------------------------


def _not_found(item: ReportableDocument) -> NotFound:
    return NotFound(f"{type(item).__name__} not found")


def like_update(item: ModeratedDocument, user_id: OID) -> dict:
    """Operators toggling ``user_id`` in ``likes``; a like also drops a dislike."""
    if user_id in item.likes:
        return {"$pull": {"likes": user_id}}
    return {"$addToSet": {"likes": user_id}, "$pull": {"dislikes": user_id}}


def dislike_update(item: ModeratedDocument, user_id: OID) -> dict:
    """Mirror of like_update for ``dislikes``."""
    if user_id in item.dislikes:
        return {"$pull": {"dislikes": user_id}}
    return {"$addToSet": {"dislikes": user_id}, "$pull": {"likes": user_id}}


async def like(
    item: ModeratedDocument,
    *,
    actor: User,
    emitter: Optional[Emitter] = None,
) -> bool:
    """Toggle the actor's like and notify the author on a fresh like.

    Returns True when the actor likes the item afterwards.
    """
    update = like_update(item, actor.id)
    update["$set"] = {"updated_at": utcnow()}
    if not await apply_update(item, update):
        raise _not_found(item)
    liked = actor.id in item.likes
    if liked:
        await _notify_like(item, actor, emitter)
    return liked


async def dislike(item: ModeratedDocument, *, actor: User) -> bool:
    update = dislike_update(item, actor.id)
    update["$set"] = {"updated_at": utcnow()}
    if not await apply_update(item, update):
        raise _not_found(item)
    return actor.id in item.dislikes


async def _notify_like(item: ModeratedDocument, actor: User, emitter: Optional[Emitter]) -> None:
    sender_info = user_brief(actor).model_dump(mode="json")
    if isinstance(item, Comment):
        await notify(
            emitter,
            recipient=item.author_id,
            sender=actor.id,
            type=NotificationType.LIKE_COMMENT,
            post=item.post_or_blog,
            post_type=item.post_type,
            comment=item.id,
            sender_info=sender_info,
        )
        return
    await notify(
        emitter,
        recipient=item.author_id,
        sender=actor.id,
        type=NotificationType.LIKE_POST,
        post=item.id,
        post_type=content_type_of(item),
        sender_info=sender_info,
    )


def content_type_of(item: ModeratedDocument) -> Optional[ContentType]:
    for content_type, model in CONTENT_MODELS.items():
        if isinstance(item, model):
            return content_type
    return None


# ------------------------ Reports ------------------------


async def report(
    item: ReportableDocument,
    *,
    actor: User,
    reason: ReportReason,
    description: Optional[str] = None,
) -> Report:
    """Append the actor's report; each user may report an item once.

    The once-per-user check is part of the update filter, and ``report_count``
    moves with the pushed row in the same write.
    """
    if item.has_reported(actor.id):
        raise AlreadyReported()
    entry = Report(user_id=actor.id, reason=reason, description=description)
    pushed = await apply_update(
        item,
        {
            "$push": {"reports": entry},
            "$inc": {"report_count": 1},
            "$set": {"is_reported": True},
        },
        {"reports.user_id": {"$ne": actor.id}},
    )
    if not pushed:
        raise AlreadyReported()
    logger.info(f"{type(item).__name__} {item.id} reported by {actor.id} ({reason.value})")
    return entry


async def clear_reports(item: ReportableDocument) -> None:
    """Admin action: forget all reports on ``item``."""
    if not await apply_update(item, {"$set": {"reports": [], "report_count": 0, "is_reported": False}}):
        raise _not_found(item)


async def set_approval(item: ModeratedDocument, is_approved: bool) -> None:
    if not await apply_update(item, {"$set": {"is_approved": is_approved, "updated_at": utcnow()}}):
        raise _not_found(item)


# ------------------------ Doctor approval ------------------------


async def _load_doctor(doctor_id: Union[str, OID]) -> User:
    user = await get_or_404(User, doctor_id, "Doctor")
    if user.role != Role.DOCTOR:
        raise NotADoctor()
    if user.doctor_info is None:
        user.doctor_info = DoctorInfo()
    return user


async def _store_decision(doctor: User, info: DoctorInfo) -> None:
    if not await apply_update(doctor, {"$set": {"doctor_info": info, "updated_at": utcnow()}}):
        raise NotFound("Doctor not found")


async def approve_doctor(*, doctor_id: Union[str, OID], admin: User) -> User:
    """pending/rejected → approved."""
    doctor = await _load_doctor(doctor_id)
    if doctor.doctor_info.approval_status == ApprovalStatus.APPROVED:
        raise AlreadyApproved()
    info = doctor.doctor_info.model_copy(
        update={
            "approval_status": ApprovalStatus.APPROVED,
            "approval_date": utcnow(),
            "approved_by": admin.id,
            "rejection_reason": None,
        }
    )
    await _store_decision(doctor, info)
    logger.info(f"Doctor {doctor.id} approved by {admin.id}")
    return doctor


async def reject_doctor(*, doctor_id: Union[str, OID], admin: User, reason: Optional[str] = None) -> User:
    """pending/approved → rejected."""
    doctor = await _load_doctor(doctor_id)
    if doctor.doctor_info.approval_status == ApprovalStatus.REJECTED:
        raise AlreadyRejected()
    info = doctor.doctor_info.model_copy(
        update={
            "approval_status": ApprovalStatus.REJECTED,
            "approval_date": utcnow(),
            "approved_by": admin.id,
            "rejection_reason": reason or DEFAULT_REJECTION_REASON,
        }
    )
    await _store_decision(doctor, info)
    logger.info(f"Doctor {doctor.id} rejected by {admin.id}")
    return doctor


async def ensure_doctor_approved(user: User) -> User:
    """Re-read the doctor's approval status; raise unless it is exactly approved."""
    fresh = await User.get(user.id)
    if fresh is None:
        raise NotFound("User not found")
    if fresh.role != Role.DOCTOR:
        raise Forbidden("Only doctors can perform this action")
    info = fresh.doctor_info
    if info is None or info.approval_status != ApprovalStatus.APPROVED:
        raise ApprovalRequired(
            info.approval_status.value if info else None,
            info.rejection_reason if info and info.approval_status == ApprovalStatus.REJECTED else None,
        )
    return fresh


async def ensure_can_publish(user: User) -> None:
    """Doctors must be approved; other roles pass through unchanged."""
    if user.role == Role.DOCTOR:
        await ensure_doctor_approved(user)
