"""
Tests for direct messaging: validation, conversation bookkeeping and the
REST endpoints (service layer mocked).
"""

import pytest
from beanie import PydanticObjectId as OID
from fastapi.testclient import TestClient
from pydantic import ValidationError

from app.exceptions import Conflict
from app.main import app
from app.models import Conversation, Message, conversation_key
from app.routers import messages as messages_router
from app.schemas import MessageIn
from app.services import message_service
from app.services.realtime import active_connections
from app.utils.dates import utcnow
from app.utils.serializers import user_brief

client = TestClient(app)


def conversation_between(a, b, **fields) -> Conversation:
    return Conversation.model_construct(
        id=OID(),
        participants=sorted([a, b], key=str),
        participants_key=conversation_key(a, b),
        unread_counts=fields.pop("unread_counts", {str(a): 0, str(b): 0}),
        **fields,
    )


# --- Validation ---


def test_message_content_is_trimmed():
    assert MessageIn(receiver_id="x", content="  hello  ").content == "hello"


def test_blank_message_is_rejected():
    with pytest.raises(ValidationError):
        MessageIn(receiver_id="x", content="   ")


async def test_service_rejects_blank_content(make_user):
    with pytest.raises(Conflict):
        await message_service.send_message(sender=make_user(), receiver_id=str(OID()), content=" \n ")


# --- Conversation helpers ---


def test_conversation_helpers():
    a, b = OID(), OID()
    conversation = conversation_between(a, b, unread_counts={str(a): 3})
    assert conversation.unread_for(a) == 3
    assert conversation.unread_for(b) == 0
    assert conversation.other_participant(a) == b
    assert conversation.other_participant(b) == a


# --- Endpoints ---


def test_send_requires_authentication():
    response = client.post("/messages", json={"receiver_id": str(OID()), "content": "hi"})
    assert response.status_code == 401
    assert response.json()["status_code"] == 401


def test_send_message(login_as, make_user, emitter, monkeypatch):
    sender = login_as(make_user())
    receiver_id = OID()
    calls = {}

    async def fake_send(*, sender, receiver_id, content, emitter):
        calls.update(sender=sender, receiver_id=receiver_id, content=content, emitter=emitter)
        return Message.model_construct(
            id=OID(),
            conversation_id=OID(),
            sender=sender.id,
            receiver=OID(receiver_id),
            content=content,
            is_read=False,
            created_at=utcnow(),
        )

    monkeypatch.setattr(message_service, "send_message", fake_send)
    response = client.post("/messages", json={"receiver_id": str(receiver_id), "content": " hi there "})

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Message sent"
    assert data["data"]["content"] == "hi there"
    assert data["data"]["receiver"] == str(receiver_id)
    assert calls["sender"] is sender
    assert calls["emitter"] is emitter


def test_send_to_self_is_a_bad_request(login_as, make_user, monkeypatch):
    user = login_as(make_user())

    async def fake_send(**kwargs):
        raise Conflict("You cannot send a message to yourself")

    monkeypatch.setattr(message_service, "send_message", fake_send)
    response = client.post("/messages", json={"receiver_id": str(user.id), "content": "me"})
    assert response.status_code == 400
    assert response.json() == {"message": "You cannot send a message to yourself", "status_code": 400}


def test_conversation_list_reports_unread_and_presence(login_as, make_user, monkeypatch):
    me = login_as(make_user())
    other = make_user(username="zeynep")
    conversation = conversation_between(me.id, other.id, unread_counts={str(me.id): 2})
    conversation.updated_at = utcnow()

    async def fake_list(*, user):
        return [(conversation, None)]

    async def fake_briefs(ids):
        return {other.id: user_brief(other)}

    monkeypatch.setattr(message_service, "list_conversations", fake_list)
    monkeypatch.setattr(messages_router, "load_user_briefs", fake_briefs)
    monkeypatch.setitem(active_connections, str(other.id), {"sid-1"})

    response = client.get("/messages/conversations")
    assert response.status_code == 200
    [row] = response.json()["conversations"]
    assert row["id"] == str(conversation.id)
    assert row["unread_count"] == 2
    assert row["is_online"] is True
    assert row["last_message"] is None


def test_unread_total(login_as, make_user, monkeypatch):
    login_as(make_user())

    async def fake_unread(*, user):
        return 5

    monkeypatch.setattr(message_service, "unread_total", fake_unread)
    response = client.get("/messages/unread-count")
    assert response.json() == {"message": "Unread count", "unread_count": 5}
