from typing import Optional

from fastapi import APIRouter, Query, status

from app.constants import Role
from app.deps import AdminUser, CurrentUser, Page, Realtime
from app.models import User
from app.schemas import MedicalConditionIn, ProfileUpdate
from app.services import user_service
from app.services.moderation_service import ensure_doctor_approved
from app.utils.pagination import build_pagination
from app.utils.serializers import user_brief, user_out

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
async def list_users(
    role: Optional[Role] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    paging=Page,
    admin: User = AdminUser,
):
    page, limit = paging
    users, total = await user_service.list_users(
        page=page, limit=limit, role=role, is_active=is_active, search=search
    )
    return {
        "message": "Users retrieved",
        "users": [user_out(u) for u in users],
        "pagination": build_pagination(page, limit, total),
    }


@router.get("/search")
async def search_users(q: str = Query(..., min_length=1), limit: int = Query(20, ge=1, le=50)):
    users = await user_service.search_users(q=q, limit=limit)
    return {"message": "Search results", "users": [user_brief(u) for u in users]}


@router.get("/experts")
async def list_experts(specialization: Optional[str] = None, paging=Page):
    """Approved doctors, optionally filtered by specialization."""
    page, limit = paging
    doctors, total = await user_service.list_experts(
        page=page, limit=limit, specialization=specialization
    )
    return {
        "message": "Experts retrieved",
        "experts": [user_out(d) for d in doctors],
        "pagination": build_pagination(page, limit, total),
    }


@router.get("/experts/{username}")
async def get_expert(username: str):
    doctor = await user_service.get_expert(username)
    return {"message": "Expert retrieved", "expert": user_out(doctor)}


@router.get("/me/approval-status")
async def my_approval_status(current: User = CurrentUser):
    """Doctors poll this while their account waits for approval."""
    if current.role != Role.DOCTOR or current.doctor_info is None:
        return {"message": "Approval status", "role": current.role, "approval_status": None}
    info = current.doctor_info
    return {
        "message": "Approval status",
        "role": current.role,
        "approval_status": info.approval_status,
        "approval_date": info.approval_date,
        "rejection_reason": info.rejection_reason,
    }


@router.get("/me/can-publish")
async def can_publish(current: User = CurrentUser):
    """Raises 403 with the approval state unless the doctor is approved."""
    doctor = await ensure_doctor_approved(current)
    return {"message": "Doctor is approved", "approval_status": doctor.approval_status}


@router.put("/profile")
async def update_profile(payload: ProfileUpdate, current: User = CurrentUser):
    user = await user_service.update_profile(user=current, data=payload)
    return {"message": "Profile updated", "user": user_out(user)}


@router.post("/medical-conditions", status_code=status.HTTP_201_CREATED)
async def add_medical_condition(payload: MedicalConditionIn, current: User = CurrentUser):
    await user_service.add_medical_condition(user=current, data=payload)
    return {"message": "Medical condition added", "user": user_out(current)}


@router.delete("/medical-conditions/{condition_id}")
async def remove_medical_condition(condition_id: str, current: User = CurrentUser):
    await user_service.remove_medical_condition(user=current, condition_id=condition_id)
    return {"message": "Medical condition removed", "user": user_out(current)}


@router.get("/{user_id}")
async def get_user(user_id: str):
    user = await user_service.get_user(user_id)
    return {"message": "User retrieved", "user": user_out(user)}


@router.get("/{user_id}/stats")
async def get_user_stats(user_id: str):
    stats = await user_service.user_stats(user_id)
    return {"message": "User stats", "stats": stats}


@router.post("/{user_id}/follow")
async def toggle_follow(user_id: str, current: User = CurrentUser, emitter=Realtime):
    following = await user_service.toggle_follow(user=current, target_id=user_id, emitter=emitter)
    return {
        "message": "User followed" if following else "User unfollowed",
        "is_following": following,
        "following_count": len(current.following),
    }


@router.delete("/{user_id}")
async def delete_user(user_id: str, admin: User = AdminUser):
    await user_service.delete_user(user_id=user_id, admin=admin)
    return {"message": "User deleted"}
