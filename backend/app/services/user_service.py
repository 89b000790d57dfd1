from typing import List, Optional, Tuple

from beanie import PydanticObjectId as OID

from app.constants import ApprovalStatus, NotificationType, Role
from app.exceptions import Conflict, NotFound
from app.models import Blog, Comment, Disease, MedicalCondition, Post, User
from app.schemas import MedicalConditionIn, ProfileUpdate
from app.services.notification_service import notify
from app.services.realtime import Emitter
from app.utils.dates import utcnow
from app.utils.ids import get_or_404, to_oid
from app.utils.logger import get_logger
from app.utils.pagination import page_skip
from app.utils.serializers import user_brief
from app.utils.text import contains_pattern
from app.utils.updates import apply_update

logger = get_logger("user_service")


async def get_user(user_id) -> User:
    return await get_or_404(User, user_id, "User")


async def list_users(
    *,
    page: int,
    limit: int,
    role: Optional[Role] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
) -> Tuple[List[User], int]:
    query: dict = {}
    if role:
        query["role"] = role.value
    if is_active is not None:
        query["is_active"] = is_active
    if search:
        pattern = contains_pattern(search)
        query["$or"] = [
            {"username": pattern},
            {"email": pattern},
            {"first_name": pattern},
            {"last_name": pattern},
        ]
    total = await User.find(query).count()
    users = (
        await User.find(query)
        .sort(-User.created_at)
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    return users, total


async def search_users(*, q: str, limit: int = 20) -> List[User]:
    pattern = contains_pattern(q)
    return (
        await User.find(
            {
                "is_active": True,
                "$or": [{"username": pattern}, {"first_name": pattern}, {"last_name": pattern}],
            }
        )
        .limit(limit)
        .to_list()
    )


def _expert_filter(specialization: Optional[str] = None) -> dict:
    query: dict = {
        "role": Role.DOCTOR.value,
        "is_active": True,
        "doctor_info.approval_status": ApprovalStatus.APPROVED.value,
    }
    if specialization:
        query["doctor_info.specialization"] = contains_pattern(specialization)
    return query


async def list_experts(
    *, page: int, limit: int, specialization: Optional[str] = None
) -> Tuple[List[User], int]:
    """Approved, active doctors."""
    query = _expert_filter(specialization)
    total = await User.find(query).count()
    users = (
        await User.find(query)
        .sort(+User.first_name)
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    return users, total


async def get_expert(username: str) -> User:
    query = _expert_filter()
    query["username"] = username
    user = await User.find_one(query)
    if user is None:
        raise NotFound("Expert not found")
    return user


async def user_stats(user_id: str) -> dict:
    user = await get_user(user_id)
    posts = await Post.find(Post.author_id == user.id, Post.is_approved == True).count()
    blogs = await Blog.find(Blog.author_id == user.id, Blog.is_published == True).count()
    comments = await Comment.find(Comment.author_id == user.id).count()
    return {
        "followers": len(user.followers),
        "following": len(user.following),
        "posts": posts,
        "blogs": blogs,
        "comments": comments,
        "member_since": user.created_at,
    }


async def update_profile(*, user: User, data: ProfileUpdate) -> User:
    changes = data.model_dump(exclude_unset=True, exclude={"doctor_info"})
    for field in ("first_name", "last_name"):
        if changes.get(field) is None:
            changes.pop(field, None)
    if data.doctor_info is not None and user.role == Role.DOCTOR and user.doctor_info is not None:
        changes["doctor_info"] = user.doctor_info.model_copy(
            update=data.doctor_info.model_dump(exclude_unset=True)
        )
    changes["updated_at"] = utcnow()
    if not await apply_update(user, {"$set": changes}):
        raise NotFound("User not found")
    return user


async def toggle_follow(*, user: User, target_id: str, emitter: Optional[Emitter] = None) -> bool:
    """Follow or unfollow ``target_id``; returns True when now following."""
    target = await get_user(target_id)
    if target.id == user.id:
        raise Conflict("You cannot follow yourself")

    following = target.id not in user.following
    op = "$addToSet" if following else "$pull"
    await apply_update(user, {op: {"following": target.id}})
    await apply_update(target, {op: {"followers": user.id}})

    if following:
        await notify(
            emitter,
            recipient=target.id,
            sender=user.id,
            type=NotificationType.FOLLOW,
            sender_info=user_brief(user).model_dump(mode="json"),
        )
    return following


async def add_medical_condition(*, user: User, data: MedicalConditionIn) -> MedicalCondition:
    disease = await get_or_404(Disease, data.disease_id, "Disease")
    if any(c.disease_id == disease.id for c in user.medical_conditions):
        raise Conflict("This condition is already on your profile")
    condition = MedicalCondition(
        disease_id=disease.id,
        diagnosis_date=data.diagnosis_date,
        notes=data.notes,
    )
    added = await apply_update(
        user,
        {"$push": {"medical_conditions": condition}, "$set": {"updated_at": utcnow()}},
        {"medical_conditions.disease_id": {"$ne": disease.id}},
    )
    if not added:
        raise Conflict("This condition is already on your profile")
    return condition


async def remove_medical_condition(*, user: User, condition_id: str) -> None:
    cid = to_oid(condition_id, "Medical condition")
    removed = await apply_update(
        user,
        {"$pull": {"medical_conditions": {"id": cid}}, "$set": {"updated_at": utcnow()}},
        {"medical_conditions.id": cid},
    )
    if not removed:
        raise NotFound("Medical condition not found")


async def delete_user(*, user_id: str, admin: User) -> None:
    """Hard delete by an admin; the user's content goes with the account."""
    user = await get_user(user_id)
    if user.id == admin.id:
        raise Conflict("Admins cannot delete their own account")
    await Comment.find(Comment.author_id == user.id).delete()
    await Post.find(Post.author_id == user.id).delete()
    await Blog.find(Blog.author_id == user.id).delete()
    await User.find({"followers": user.id}).update({"$pull": {"followers": user.id}})
    await User.find({"following": user.id}).update({"$pull": {"following": user.id}})
    await user.delete()
    logger.info(f"User {user.id} deleted by admin {admin.id}")


async def users_by_ids(ids: List[OID]) -> List[User]:
    if not ids:
        return []
    return await User.find({"_id": {"$in": ids}}).to_list()
