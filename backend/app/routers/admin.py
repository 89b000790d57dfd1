from typing import Dict, Optional

from fastapi import APIRouter, Depends

from app.constants import ApprovalStatus, Role
from app.deps import AdminUser, Page
from app.models import User
from app.schemas import ApprovalIn, DoctorRejectIn, UserStatusUpdate
from app.security import require_roles
from app.services import admin_service, disease_service, moderation_service, stats_service, user_service
from app.services.admin_service import ContentKind, ReportableKind
from app.utils.pagination import build_pagination
from app.utils.serializers import (
    blog_out,
    comment_out,
    event_out,
    event_post_out,
    load_user_briefs,
    post_out,
    user_out,
)

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_roles([Role.ADMIN]))]
)

_SERIALIZERS = {
    "posts": post_out,
    "blogs": blog_out,
    "comments": comment_out,
    "event-posts": event_post_out,
    "events": event_out,
}


async def _render_queue(queue: Dict[str, list], admin: User) -> Dict[str, list]:
    briefs = await load_user_briefs(item.author_id for items in queue.values() for item in items)
    return {
        kind: [_SERIALIZERS[kind](item, briefs, admin) for item in items]
        for kind, items in queue.items()
    }


async def _render_item(kind: str, item, admin: User):
    briefs = await load_user_briefs([item.author_id])
    return _SERIALIZERS[kind](item, briefs, admin)


@router.get("/dashboard")
async def dashboard():
    return {"message": "Dashboard stats", "stats": await stats_service.get_dashboard_stats()}


@router.get("/users")
async def list_users(
    role: Optional[Role] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    paging=Page,
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


@router.patch("/users/{user_id}/status")
async def update_user_status(user_id: str, payload: UserStatusUpdate, admin: User = AdminUser):
    user = await admin_service.update_user_status(user_id=user_id, admin=admin, data=payload)
    return {"message": "User updated successfully", "user": user_out(user)}


@router.get("/doctors")
async def list_doctors(status: Optional[ApprovalStatus] = None, paging=Page):
    page, limit = paging
    doctors, total = await admin_service.list_doctors(page=page, limit=limit, status=status)
    return {
        "message": "Doctors retrieved",
        "doctors": [user_out(d) for d in doctors],
        "pagination": build_pagination(page, limit, total),
    }


@router.patch("/doctors/{doctor_id}/approve")
async def approve_doctor(doctor_id: str, admin: User = AdminUser):
    doctor = await moderation_service.approve_doctor(doctor_id=doctor_id, admin=admin)
    return {"message": "Doctor approved successfully", "doctor": user_out(doctor)}


@router.patch("/doctors/{doctor_id}/reject")
async def reject_doctor(doctor_id: str, payload: Optional[DoctorRejectIn] = None, admin: User = AdminUser):
    doctor = await moderation_service.reject_doctor(
        doctor_id=doctor_id, admin=admin, reason=payload.reason if payload else None
    )
    return {"message": "Doctor rejected", "doctor": user_out(doctor)}


@router.patch("/content/{kind}/{item_id}/approval")
async def set_content_approval(kind: ContentKind, item_id: str, payload: ApprovalIn, admin: User = AdminUser):
    item = await admin_service.set_content_approval(
        kind=kind, item_id=item_id, is_approved=payload.is_approved, admin=admin
    )
    state = "approved" if payload.is_approved else "unapproved"
    return {"message": f"Content {state}", "item": await _render_item(kind, item, admin)}


@router.delete("/content/{kind}/{item_id}/reports")
async def clear_reports(kind: ReportableKind, item_id: str, admin: User = AdminUser):
    item = await admin_service.clear_content_reports(kind=kind, item_id=item_id, admin=admin)
    return {"message": "Reports cleared", "item": await _render_item(kind, item, admin)}


@router.get("/reported")
async def reported_content(admin: User = AdminUser):
    queue = await admin_service.reported_content()
    return {"message": "Reported content", **await _render_queue(queue, admin)}


@router.get("/pending")
async def pending_content(admin: User = AdminUser):
    queue = await admin_service.pending_content()
    return {"message": "Pending content", **await _render_queue(queue, admin)}


@router.get("/stats/categories")
async def category_stats():
    return {"message": "Category stats", "stats": await stats_service.get_category_stats()}


@router.get("/stats/diseases")
async def disease_stats():
    return {"message": "Disease stats", "stats": await disease_service.disease_stats()}
