"""
Tests for event registration capacity and the event approval rules.
"""

from datetime import timedelta

import pytest
from beanie import PydanticObjectId as OID
from pydantic import ValidationError

from app.constants import EventCategory, EventStatus, ParticipantStatus, Role
from app.exceptions import AlreadyRegistered, Conflict, EventFull, EventNotActive, Forbidden, NotRegistered
from app.models import Event, Participant
from app.schemas import EventCreate, EventUpdate
from app.services import event_service
from app.utils.dates import utcnow
from app.utils.serializers import event_out


def build_event(**fields) -> Event:
    start = utcnow() + timedelta(days=3)
    values = dict(
        id=OID(),
        title="Mindful breathing",
        description="Guided session",
        category=EventCategory.MEDITATION,
        date=start,
        end_date=start + timedelta(hours=2),
        location="Community hall",
        max_participants=2,
        current_participants=0,
        status=EventStatus.ACTIVE,
        author_id=OID(),
        participants=[],
        reports=[],
    )
    values.update(fields)
    return Event.model_construct(**values)


@pytest.fixture
def event(monkeypatch, memory_store):
    """An active two-seat event served to the service instead of MongoDB."""
    item = memory_store.track(build_event())

    async def fake_get_event(event_id):
        return item

    monkeypatch.setattr(event_service, "get_event", fake_get_event)
    return item


async def test_register_until_full(event, make_user, memory_store):
    first, second, third = make_user(), make_user(), make_user()

    await event_service.register(event_id=str(event.id), user=first)
    await event_service.register(event_id=str(event.id), user=second, notes="vegetarian")
    assert event.current_participants == 2
    assert event.is_full

    with pytest.raises(EventFull) as exc:
        await event_service.register(event_id=str(event.id), user=third)
    assert exc.value.status_code == 409
    assert event.current_participants == 2


async def test_register_twice_is_rejected(event, make_user, memory_store):
    user = make_user()
    await event_service.register(event_id=str(event.id), user=user)
    with pytest.raises(AlreadyRegistered) as exc:
        await event_service.register(event_id=str(event.id), user=user)
    assert exc.value.status_code == 409
    assert event.current_participants == 1


@pytest.mark.parametrize("status", [EventStatus.PENDING, EventStatus.REJECTED, EventStatus.CANCELLED])
async def test_register_requires_active_event(event, make_user, memory_store, status):
    event.status = status
    with pytest.raises(EventNotActive) as exc:
        await event_service.register(event_id=str(event.id), user=make_user())
    assert exc.value.status_code == 400


async def test_unregister_frees_the_seat(event, make_user, memory_store):
    user = make_user()
    await event_service.register(event_id=str(event.id), user=user)
    await event_service.unregister(event_id=str(event.id), user=user)
    assert event.current_participants == 0
    assert not event.is_registered(user.id)

    with pytest.raises(NotRegistered):
        await event_service.unregister(event_id=str(event.id), user=user)


def serve_copies(monkeypatch, store, *copies):
    """Each ``get_event`` call reads like a new request: queued copies first, then fresh loads."""
    queue = list(copies)

    async def fake_get_event(event_id):
        return queue.pop(0) if queue else store.load(OID(event_id))

    monkeypatch.setattr(event_service, "get_event", fake_get_event)


async def test_interleaved_registrations_both_persist(monkeypatch, make_user, memory_store):
    item = memory_store.track(build_event())
    first, second = make_user(), make_user()
    serve_copies(monkeypatch, memory_store, memory_store.load(item.id), memory_store.load(item.id))

    await event_service.register(event_id=str(item.id), user=first)
    await event_service.register(event_id=str(item.id), user=second)

    stored = memory_store.rows[item.id]
    assert stored.current_participants == 2
    assert [p.user_id for p in stored.participants] == [first.id, second.id]


async def test_stale_copy_cannot_take_the_last_seat(monkeypatch, make_user, memory_store):
    item = memory_store.track(build_event(max_participants=1))
    stale = memory_store.load(item.id)
    serve_copies(monkeypatch, memory_store, memory_store.load(item.id), stale)

    await event_service.register(event_id=str(item.id), user=make_user())
    with pytest.raises(EventFull):
        await event_service.register(event_id=str(item.id), user=make_user())

    stored = memory_store.rows[item.id]
    assert stored.current_participants == 1
    assert len(stored.participants) == 1


@pytest.mark.parametrize("status", ["completed", "cancelled"])
async def test_pending_event_cannot_be_closed(event, make_user, status):
    event.status = EventStatus.PENDING
    owner = make_user(id=event.author_id)
    with pytest.raises(Conflict) as exc:
        await event_service.update_event(event_id=str(event.id), user=owner, data=EventUpdate(status=status))
    assert exc.value.status_code == 400
    assert event.status == EventStatus.PENDING


@pytest.mark.parametrize("current", [EventStatus.ACTIVE, EventStatus.FULL])
async def test_open_event_can_be_cancelled(monkeypatch, make_user, memory_store, current):
    item = memory_store.track(build_event(status=current))
    serve_copies(monkeypatch, memory_store)
    owner = make_user(id=item.author_id)

    updated = await event_service.update_event(
        event_id=str(item.id), user=owner, data=EventUpdate(status="cancelled")
    )
    assert updated.status == EventStatus.CANCELLED
    assert memory_store.rows[item.id].status == EventStatus.CANCELLED


def test_only_confirmed_participants_count():
    item = build_event(
        participants=[
            Participant(user_id=OID()),
            Participant(user_id=OID(), status=ParticipantStatus.CANCELLED),
        ]
    )
    item.sync_participant_count()
    assert item.current_participants == 1


async def test_participants_are_visible_to_owner_and_admin_only(event, make_user, memory_store):
    owner = make_user(id=event.author_id)
    guest = make_user()
    await event_service.register(event_id=str(event.id), user=guest)

    rows, total = await event_service.participants(event_id=str(event.id), user=owner, page=1, limit=10)
    assert total == 1
    assert rows[0].user_id == guest.id

    admin_rows, _ = await event_service.participants(
        event_id=str(event.id), user=make_user(Role.ADMIN), page=1, limit=10
    )
    assert len(admin_rows) == 1

    with pytest.raises(Forbidden):
        await event_service.participants(event_id=str(event.id), user=guest, page=1, limit=10)


async def test_admin_decision(event, make_user, memory_store):
    admin = make_user(Role.ADMIN)
    event.status = EventStatus.PENDING

    rejected = await event_service.decide(
        event_id=str(event.id), admin=admin, action="reject", rejection_reason="Duplicate"
    )
    assert rejected.status == EventStatus.REJECTED
    assert rejected.rejection_reason == "Duplicate"

    approved = await event_service.decide(event_id=str(event.id), admin=admin, action="approve")
    assert approved.status == EventStatus.ACTIVE
    assert approved.rejection_reason is None
    assert approved.approved_by == admin.id


def test_event_must_end_after_it_starts():
    start = utcnow() + timedelta(days=1)
    with pytest.raises(ValidationError):
        EventCreate(
            title="Yoga",
            description="Morning yoga",
            category=EventCategory.YOGA,
            date=start,
            end_date=start - timedelta(hours=1),
            location="Park",
            max_participants=10,
        )


def test_can_register_flag(make_user):
    viewer = make_user()
    item = build_event()
    assert event_out(item, {}, viewer, with_can_register=True).can_register is True
    assert event_out(item, {}, None, with_can_register=True).can_register is False

    full = build_event(max_participants=1, current_participants=1)
    assert event_out(full, {}, viewer, with_can_register=True).can_register is False

    past = build_event(date=utcnow() - timedelta(days=1), end_date=utcnow())
    assert event_out(past, {}, viewer, with_can_register=True).can_register is False

    out = event_out(full, {}, viewer)
    assert out.can_register is None
    assert out.available_spots == 0
