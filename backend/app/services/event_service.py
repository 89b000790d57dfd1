from collections import Counter
from datetime import datetime
from typing import List, Literal, Optional, Tuple

from app.constants import EventCategory, EventStatus, ParticipantStatus, Role
from app.exceptions import (
    AlreadyRegistered,
    Conflict,
    EventFull,
    EventNotActive,
    Forbidden,
    NotFound,
    NotRegistered,
)
from app.models import Event, EventPost, Comment, Participant, User
from app.schemas import EventCreate, EventUpdate
from app.security import ensure_owner_or_admin, is_admin
from app.services.moderation_service import ensure_can_publish
from app.utils.dates import as_utc, utcnow
from app.utils.ids import get_or_404
from app.utils.logger import get_logger
from app.utils.pagination import page_skip
from app.utils.text import contains_pattern
from app.utils.updates import apply_update

logger = get_logger("event_service")

PUBLIC_STATUSES = [EventStatus.ACTIVE.value, EventStatus.FULL.value]
CLOSABLE_STATUSES = {EventStatus.ACTIVE, EventStatus.FULL}
SORT_FIELDS = {"date", "created_at", "title", "price", "current_participants"}


async def create_event(*, author: User, data: EventCreate) -> Event:
    """New events wait for admin approval unless an admin publishes an external one."""
    await ensure_can_publish(author)
    status = EventStatus.PENDING
    fields = data.model_dump()
    if author.role == Role.ADMIN and data.is_external:
        status = EventStatus.ACTIVE
    else:
        fields["is_external"] = False
    event = Event(author_id=author.id, status=status, **fields)
    if status == EventStatus.ACTIVE:
        event.approved_by = author.id
        event.approved_at = utcnow()
    await event.insert()
    logger.info(f"Event {event.id} created by {author.id} ({status.value})")
    return event


async def get_event(event_id: str) -> Event:
    return await get_or_404(Event, event_id, "Event")


def _visible_to(event: Event, viewer: Optional[User]) -> bool:
    if event.status.value in PUBLIC_STATUSES or event.status == EventStatus.COMPLETED:
        return True
    return viewer is not None and (viewer.id == event.author_id or viewer.role == Role.ADMIN)


async def view_event(*, event_id: str, viewer: Optional[User]) -> Event:
    event = await get_event(event_id)
    if not _visible_to(event, viewer):
        raise Forbidden("This event is not public yet")
    return event


async def list_events(
    *,
    viewer: Optional[User],
    page: int,
    limit: int,
    status: Optional[str] = None,
    category: Optional[EventCategory] = None,
    is_online: Optional[bool] = None,
    upcoming: bool = False,
    sort_by: str = "date",
    sort_order: Literal["asc", "desc"] = "asc",
) -> Tuple[List[Event], int]:
    """Public listing shows active/full events; admins may ask for any status or ``all``."""
    query: dict = {}
    if status and is_admin(viewer):
        if status != "all":
            query["status"] = status
    elif status and status in PUBLIC_STATUSES:
        query["status"] = status
    else:
        query["status"] = {"$in": PUBLIC_STATUSES}
    if category:
        query["category"] = category.value
    if is_online is not None:
        query["is_online"] = is_online
    if upcoming:
        query["date"] = {"$gte": utcnow()}

    field = sort_by if sort_by in SORT_FIELDS else "date"
    direction = "+" if sort_order == "asc" else "-"
    total = await Event.find(query).count()
    events = (
        await Event.find(query)
        .sort(f"{direction}{field}")
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    return events, total


async def search_events(
    *,
    page: int,
    limit: int,
    q: Optional[str] = None,
    category: Optional[EventCategory] = None,
    location: Optional[str] = None,
    is_online: Optional[bool] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> Tuple[List[Event], int]:
    query: dict = {"status": {"$in": PUBLIC_STATUSES}}
    if q:
        pattern = contains_pattern(q)
        query["$or"] = [
            {"title": pattern},
            {"description": pattern},
            {"instructor": pattern},
            {"tags": pattern},
        ]
    if category:
        query["category"] = category.value
    if location:
        query["location"] = contains_pattern(location)
    if is_online is not None:
        query["is_online"] = is_online
    if date_from or date_to:
        date_filter: dict = {}
        if date_from:
            date_filter["$gte"] = as_utc(date_from)
        if date_to:
            date_filter["$lte"] = as_utc(date_to)
        query["date"] = date_filter

    total = await Event.find(query).count()
    events = (
        await Event.find(query)
        .sort(+Event.date)
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    return events, total


async def event_stats() -> dict:
    """Totals per status plus category and organizer breakdowns of public events."""
    events = await Event.find_all().to_list()
    by_status = Counter(e.status.value for e in events)
    public = [e for e in events if e.status.value in PUBLIC_STATUSES]
    now = utcnow()
    return {
        "total_events": len(events),
        "active_events": by_status.get(EventStatus.ACTIVE.value, 0),
        "pending_events": by_status.get(EventStatus.PENDING.value, 0),
        "upcoming_events": sum(1 for e in public if as_utc(e.date) >= now),
        "total_participants": sum(e.current_participants for e in events),
        "category_stats": [
            {"category": c, "count": n}
            for c, n in Counter(e.category.value for e in public).most_common()
        ],
        "organizer_stats": [
            {"organizer_type": o, "count": n}
            for o, n in Counter(e.organizer_type.value for e in public).most_common()
        ],
    }


async def my_events(
    *,
    user: User,
    kind: Literal["created", "registered"],
    page: int,
    limit: int,
) -> Tuple[List[Event], int]:
    if kind == "created":
        query: dict = {"author_id": user.id}
    else:
        query = {
            "participants": {
                "$elemMatch": {"user_id": user.id, "status": ParticipantStatus.CONFIRMED.value}
            }
        }
    total = await Event.find(query).count()
    events = (
        await Event.find(query)
        .sort(+Event.date)
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    return events, total


async def update_event(*, event_id: str, user: User, data: EventUpdate) -> Event:
    """Owner/admin edit; only active or full events can be completed or cancelled."""
    event = await get_event(event_id)
    ensure_owner_or_admin(user, event.author_id, "update this event")
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if changes.get("status"):
        changes["status"] = EventStatus(changes["status"])
        if event.status not in CLOSABLE_STATUSES:
            raise Conflict(f"A {event.status.value} event cannot be marked {changes['status'].value}")
    start = changes.get("date") or event.date
    end = changes.get("end_date") or event.end_date
    if as_utc(end) <= as_utc(start):
        raise Conflict("end_date must be after date")
    if "max_participants" in changes and changes["max_participants"] < event.current_participants:
        raise Conflict("max_participants cannot be lower than the confirmed participant count")
    changes["updated_at"] = utcnow()
    if not await apply_update(event, {"$set": changes}):
        raise NotFound("Event not found")
    return event


async def delete_event(*, event_id: str, user: User) -> None:
    """Delete an event and its discussion (event posts and their comments)."""
    event = await get_event(event_id)
    ensure_owner_or_admin(user, event.author_id, "delete this event")
    posts = await EventPost.find(EventPost.event_id == event.id).to_list()
    if posts:
        await Comment.find({"post_or_blog": {"$in": [p.id for p in posts]}}).delete()
        await EventPost.find(EventPost.event_id == event.id).delete()
    await event.delete()
    logger.info(f"Event {event.id} deleted by {user.id}")


def _registration_error(event: Event, user_id) -> Optional[Conflict]:
    if event.status != EventStatus.ACTIVE:
        return EventNotActive()
    if event.current_participants >= event.max_participants:
        return EventFull()
    if event.is_registered(user_id):
        return AlreadyRegistered()
    return None


async def register(*, event_id: str, user: User, notes: Optional[str] = None) -> Event:
    """Confirm ``user`` as participant.

    The participant row is pushed and ``current_participants`` incremented in
    one update whose filter re-checks status, capacity and prior registration.
    """
    event = await get_event(event_id)
    error = _registration_error(event, user.id)
    if error:
        raise error
    row = Participant(user_id=user.id, status=ParticipantStatus.CONFIRMED, notes=notes)
    registered = await apply_update(
        event,
        {
            "$push": {"participants": row},
            "$inc": {"current_participants": 1},
            "$set": {"updated_at": utcnow()},
        },
        {
            "status": EventStatus.ACTIVE.value,
            "participants": {"$not": {"$elemMatch": _confirmed(user.id)}},
            "$expr": {"$lt": ["$current_participants", "$max_participants"]},
        },
    )
    if not registered:
        latest = await get_event(event_id)
        raise _registration_error(latest, user.id) or EventFull()
    logger.info(f"User {user.id} registered for event {event.id}")
    return event


async def unregister(*, event_id: str, user: User) -> Event:
    event = await get_event(event_id)
    if not event.is_registered(user.id):
        raise NotRegistered()
    removed = await apply_update(
        event,
        {
            "$pull": {"participants": {"user_id": user.id}},
            "$inc": {"current_participants": -1},
            "$set": {"updated_at": utcnow()},
        },
        {"participants": {"$elemMatch": _confirmed(user.id)}},
    )
    if not removed:
        raise NotRegistered()
    logger.info(f"User {user.id} unregistered from event {event.id}")
    return event


def _confirmed(user_id) -> dict:
    return {"user_id": user_id, "status": ParticipantStatus.CONFIRMED.value}


async def participants(
    *,
    event_id: str,
    user: User,
    page: int,
    limit: int,
    status: Optional[ParticipantStatus] = None,
) -> Tuple[List[Participant], int]:
    event = await get_event(event_id)
    ensure_owner_or_admin(user, event.author_id, "view participants of this event")
    rows = [p for p in event.participants if status is None or p.status == status]
    rows.sort(key=lambda p: as_utc(p.registration_date), reverse=True)
    start = page_skip(page, limit)
    return rows[start:start + limit], len(rows)


async def decide(
    *,
    event_id: str,
    admin: User,
    action: Literal["approve", "reject"],
    rejection_reason: Optional[str] = None,
) -> Event:
    """Admin approval gate for pending events."""
    event = await get_event(event_id)
    if action == "approve":
        status, reason = EventStatus.ACTIVE, None
    else:
        status, reason = EventStatus.REJECTED, rejection_reason
    now = utcnow()
    decision = {
        "status": status,
        "rejection_reason": reason,
        "approved_by": admin.id,
        "approved_at": now,
        "updated_at": now,
    }
    if not await apply_update(event, {"$set": decision}):
        raise NotFound("Event not found")
    logger.info(f"Event {event.id} {action}d by {admin.id}")
    return event
