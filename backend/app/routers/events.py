from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, status

from app.constants import EventCategory, ParticipantStatus
from app.deps import AdminUser, CurrentUser, OptionalUser, Page
from app.models import Event, User
from app.schemas import (
    EventCreate,
    EventDecisionIn,
    EventRegisterIn,
    EventUpdate,
    ParticipantOut,
    ReportIn,
)
from app.services import event_service, moderation_service
from app.utils.pagination import build_pagination
from app.utils.serializers import event_out, load_user_briefs

router = APIRouter(prefix="/events", tags=["events"])


async def _render(events: List[Event], viewer: Optional[User], with_can_register: bool = False) -> list:
    briefs = await load_user_briefs(e.author_id for e in events)
    return [event_out(e, briefs, viewer, with_can_register) for e in events]


def _capacity(event: Event) -> dict:
    return {
        "current_participants": event.current_participants,
        "available_spots": max(0, event.max_participants - event.current_participants),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_event(payload: EventCreate, current: User = CurrentUser):
    event = await event_service.create_event(author=current, data=payload)
    return {"message": "Event created successfully", "event": (await _render([event], current))[0]}


@router.get("")
async def list_events(
    status: Optional[str] = None,
    category: Optional[EventCategory] = None,
    is_online: Optional[bool] = None,
    upcoming: bool = False,
    sort_by: str = "date",
    sort_order: Literal["asc", "desc"] = "asc",
    paging=Page,
    viewer: Optional[User] = OptionalUser,
):
    page, limit = paging
    events, total = await event_service.list_events(
        viewer=viewer,
        page=page,
        limit=limit,
        status=status,
        category=category,
        is_online=is_online,
        upcoming=upcoming,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {
        "message": "Events retrieved",
        "events": await _render(events, viewer),
        "pagination": build_pagination(page, limit, total),
    }


@router.get("/search")
async def search_events(
    q: Optional[str] = None,
    category: Optional[EventCategory] = None,
    location: Optional[str] = None,
    is_online: Optional[bool] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    paging=Page,
    viewer: Optional[User] = OptionalUser,
):
    page, limit = paging
    events, total = await event_service.search_events(
        page=page,
        limit=limit,
        q=q,
        category=category,
        location=location,
        is_online=is_online,
        date_from=date_from,
        date_to=date_to,
    )
    return {
        "message": "Search results",
        "events": await _render(events, viewer),
        "pagination": build_pagination(page, limit, total),
    }


@router.get("/stats")
async def event_stats():
    return {"message": "Event stats", "stats": await event_service.event_stats()}


@router.get("/my/{kind}")
async def my_events(kind: Literal["created", "registered"], paging=Page, current: User = CurrentUser):
    page, limit = paging
    events, total = await event_service.my_events(user=current, kind=kind, page=page, limit=limit)
    return {
        "message": "Events retrieved",
        "events": await _render(events, current),
        "pagination": build_pagination(page, limit, total),
    }


@router.get("/{event_id}")
async def get_event(event_id: str, viewer: Optional[User] = OptionalUser):
    event = await event_service.view_event(event_id=event_id, viewer=viewer)
    rendered = await _render([event], viewer, with_can_register=True)
    return {"message": "Event retrieved", "event": rendered[0]}


@router.put("/{event_id}")
async def update_event(event_id: str, payload: EventUpdate, current: User = CurrentUser):
    event = await event_service.update_event(event_id=event_id, user=current, data=payload)
    return {"message": "Event updated successfully", "event": (await _render([event], current))[0]}


@router.delete("/{event_id}")
async def delete_event(event_id: str, current: User = CurrentUser):
    await event_service.delete_event(event_id=event_id, user=current)
    return {"message": "Event deleted successfully"}


@router.post("/{event_id}/register")
async def register(event_id: str, payload: Optional[EventRegisterIn] = None, current: User = CurrentUser):
    event = await event_service.register(
        event_id=event_id, user=current, notes=payload.notes if payload else None
    )
    return {"message": "Registered for event successfully", **_capacity(event)}


@router.delete("/{event_id}/register")
async def unregister(event_id: str, current: User = CurrentUser):
    event = await event_service.unregister(event_id=event_id, user=current)
    return {"message": "Unregistered from event successfully", **_capacity(event)}


@router.get("/{event_id}/participants")
async def list_participants(
    event_id: str,
    status: Optional[ParticipantStatus] = None,
    paging=Page,
    current: User = CurrentUser,
):
    """Owner or admin only."""
    page, limit = paging
    rows, total = await event_service.participants(
        event_id=event_id, user=current, page=page, limit=limit, status=status
    )
    briefs = await load_user_briefs(p.user_id for p in rows)
    return {
        "message": "Participants retrieved",
        "participants": [
            ParticipantOut(
                user=briefs.get(p.user_id),
                registration_date=p.registration_date,
                status=p.status,
                notes=p.notes,
            )
            for p in rows
        ],
        "pagination": build_pagination(page, limit, total),
    }


@router.patch("/{event_id}/decision")
async def decide(event_id: str, payload: EventDecisionIn, admin: User = AdminUser):
    event = await event_service.decide(
        event_id=event_id,
        admin=admin,
        action=payload.action,
        rejection_reason=payload.rejection_reason,
    )
    return {
        "message": f"Event {'approved' if payload.action == 'approve' else 'rejected'}",
        "event": (await _render([event], admin))[0],
    }


@router.post("/{event_id}/report")
async def report_event(event_id: str, payload: ReportIn, current: User = CurrentUser):
    event = await event_service.get_event(event_id)
    await moderation_service.report(
        event, actor=current, reason=payload.reason, description=payload.description
    )
    return {"message": "Event reported successfully", "report_count": event.report_count}
