"""
Tests for notification fan-out: persistence first, best-effort socket push.
"""

from types import SimpleNamespace

import pytest
from beanie import PydanticObjectId as OID

from app.constants import ContentType, NotificationType
from app.services import notification_service
from app.services.realtime import drain_pending_emits, schedule_emit, user_room
from app.utils.dates import utcnow


class FakeNotification(SimpleNamespace):
    stored = []
    fail = False

    def __init__(self, **fields):
        super().__init__(id=OID(), is_read=False, created_at=utcnow(), **fields)

    async def insert(self):
        if FakeNotification.fail:
            raise RuntimeError("database unavailable")
        FakeNotification.stored.append(self)


@pytest.fixture
def fake_notifications(monkeypatch):
    FakeNotification.stored = []
    FakeNotification.fail = False
    monkeypatch.setattr(notification_service, "Notification", FakeNotification)
    return FakeNotification


async def test_self_actions_do_not_notify(fake_notifications):
    user_id = OID()
    result = await notification_service.notify(
        None, recipient=user_id, sender=user_id, type=NotificationType.LIKE_POST
    )
    assert result is None
    assert fake_notifications.stored == []


async def test_notification_is_stored_then_pushed(fake_notifications, emitter):
    recipient, sender, post_id = OID(), OID(), OID()

    notification = await notification_service.notify(
        emitter,
        recipient=recipient,
        sender=sender,
        type=NotificationType.COMMENT_POST,
        post=post_id,
        post_type=ContentType.POST,
        sender_info={"id": str(sender), "username": "ayse"},
    )
    await drain_pending_emits()

    assert fake_notifications.stored == [notification]
    [(event, payload, room)] = emitter.events
    assert event == "new_notification"
    assert room == user_room(recipient)
    assert payload["type"] == "comment_post"
    assert payload["post"] == str(post_id)
    assert payload["post_type"] == "Post"
    assert payload["sender"]["username"] == "ayse"
    assert payload["is_read"] is False


async def test_storage_failure_is_swallowed(fake_notifications, emitter):
    fake_notifications.fail = True
    result = await notification_service.notify(
        emitter, recipient=OID(), sender=OID(), type=NotificationType.FOLLOW
    )
    await drain_pending_emits()
    assert result is None
    assert emitter.events == []


async def test_broken_transport_does_not_raise():
    class BrokenEmitter:
        async def emit(self, *args, **kwargs):
            raise ConnectionError("socket gone")

    schedule_emit(BrokenEmitter(), "new_notification", {}, room="user_x")
    await drain_pending_emits()


def test_schedule_without_emitter_is_a_noop():
    schedule_emit(None, "new_notification", {}, room="user_x")
