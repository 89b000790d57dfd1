"""
End-to-end service tests against a real MongoDB (skipped when unavailable).

Set MONGODB_TEST_URI to point at a disposable database; it is dropped
before and after every test.
"""

from datetime import timedelta

import pytest

from app.constants import (
    ApprovalStatus,
    ContentType,
    EventCategory,
    EventStatus,
    NotificationType,
    PostCategory,
    ReportReason,
    Role,
)
from app.exceptions import ApprovalRequired, Conflict, DuplicateAccount, EventFull, Unauthorized
from app.models import Comment, Conversation, DoctorInfo, Event, Message, Notification, Post, User
from app.schemas import CommentCreate, EventCreate, PostCreate, RegisterIn
from app.services import (
    auth_service,
    comment_service,
    event_service,
    message_service,
    moderation_service,
    notification_service,
    post_service,
    user_service,
)
from app.services.realtime import drain_pending_emits
from app.utils.dates import utcnow

pytestmark = pytest.mark.usefixtures("live_db")


async def create_user(username: str, role: Role = Role.PATIENT, **fields) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash="x",
        first_name=username.title(),
        last_name="Test",
        role=role,
        **fields,
    )
    await user.insert()
    return user


async def create_post(author: User, title: str = "Managing asthma") -> Post:
    return await post_service.create_post(
        author=author,
        data=PostCreate(title=title, content="Tips that helped", category=PostCategory.ASTHMA),
    )


# --- Auth ---


async def test_register_and_login():
    tokens, user = await auth_service.register_user(
        RegisterIn(
            username="dr_demir",
            email="Demir@Example.com",
            password="Secret123",
            first_name="Kerem",
            last_name="Demir",
            role="doctor",
        )
    )
    assert user.email == "demir@example.com"
    assert user.doctor_info.approval_status == ApprovalStatus.PENDING

    _, same = await auth_service.login(login="demir@example.com", password="Secret123")
    assert same.id == user.id
    _, by_username = await auth_service.login(login="dr_demir", password="Secret123")
    assert by_username.id == user.id

    with pytest.raises(Unauthorized):
        await auth_service.login(login="dr_demir", password="wrong")

    refreshed = await auth_service.refresh_tokens(tokens["refresh_token"])
    assert refreshed["access_token"]


async def test_duplicate_registration():
    data = RegisterIn(
        username="ayse", email="ayse@example.com", password="Secret123", first_name="A", last_name="C"
    )
    await auth_service.register_user(data)
    with pytest.raises(DuplicateAccount):
        await auth_service.register_user(data.model_copy(update={"username": "ayse2"}))


# --- Content and notifications ---


async def test_like_unlike_relike_creates_two_notifications(emitter):
    author = await create_user("author")
    fan = await create_user("fan")
    post = await create_post(author)

    await moderation_service.like(post, actor=fan, emitter=emitter)
    await moderation_service.like(post, actor=fan, emitter=emitter)
    await moderation_service.like(post, actor=fan, emitter=emitter)
    await drain_pending_emits()

    stored = await Post.get(post.id)
    assert stored.likes == [fan.id]
    rows = await Notification.find(Notification.recipient == author.id).to_list()
    assert len(rows) == 2
    assert all(n.type == NotificationType.LIKE_POST for n in rows)
    assert len(emitter.named("new_notification")) == 2


async def test_self_like_does_not_notify():
    author = await create_user("author")
    post = await create_post(author)
    await moderation_service.like(post, actor=author)
    assert await Notification.find_all().count() == 0


async def test_report_state_is_persisted():
    author = await create_user("author")
    reporter = await create_user("reporter")
    post = await create_post(author)

    await moderation_service.report(post, actor=reporter, reason=ReportReason.SPAM)
    stored = await Post.get(post.id)
    assert stored.report_count == 1
    assert stored.is_reported is True


async def test_post_slugs_are_unique():
    author = await create_user("author")
    first = await create_post(author, "Same title")
    second = await create_post(author, "Same title")
    assert first.slug == "same-title"
    assert second.slug == "same-title-1"


# --- Comments ---


async def test_reply_to_reply_attaches_to_root_and_cascade_delete():
    author = await create_user("author")
    alice = await create_user("alice")
    bob = await create_user("bob")
    post = await create_post(author)

    root = await comment_service.create_comment(
        author=alice,
        data=CommentCreate(post_or_blog=str(post.id), post_type=ContentType.POST, content="Root"),
    )
    reply = await comment_service.reply_to_comment(comment_id=str(root.id), author=bob, content="Reply")
    nested = await comment_service.reply_to_comment(comment_id=str(reply.id), author=alice, content="Nested")

    assert reply.parent_comment == root.id
    assert nested.parent_comment == root.id
    stored_root = await Comment.get(root.id)
    assert stored_root.replies == [reply.id, nested.id]

    roots, replies, total = await comment_service.list_comments(
        post_or_blog=str(post.id), post_type=ContentType.POST, page=1, limit=10
    )
    assert total == 1
    assert {c.id for c in replies[root.id]} == {reply.id, nested.id}

    removed = await comment_service.delete_comment(comment_id=str(root.id), user=alice)
    assert removed == 3
    assert await Comment.find_all().count() == 0


async def test_comment_notifies_post_author():
    author = await create_user("author")
    alice = await create_user("alice")
    post = await create_post(author)

    await comment_service.create_comment(
        author=alice,
        data=CommentCreate(post_or_blog=str(post.id), post_type=ContentType.POST, content="Hi"),
    )
    [notification] = await Notification.find(Notification.recipient == author.id).to_list()
    assert notification.type == NotificationType.COMMENT_POST
    assert notification.post == post.id


# --- Doctors ---


async def test_doctor_publishing_follows_approval():
    admin = await create_user("admin", Role.ADMIN)
    doctor = await create_user("doctor", Role.DOCTOR, doctor_info=DoctorInfo())

    with pytest.raises(ApprovalRequired) as exc:
        await create_post(doctor)
    assert exc.value.status_code == 403

    await moderation_service.approve_doctor(doctor_id=str(doctor.id), admin=admin)
    assert (await create_post(doctor)).author_id == doctor.id

    await moderation_service.reject_doctor(doctor_id=str(doctor.id), admin=admin, reason="Expired")
    with pytest.raises(ApprovalRequired) as exc:
        await create_post(doctor, "Another")
    assert exc.value.extra["rejection_reason"] == "Expired"


# --- Events ---


async def test_event_lifecycle_and_capacity():
    admin = await create_user("admin", Role.ADMIN)
    organizer = await create_user("organizer")
    guests = [await create_user(f"guest{i}") for i in range(3)]
    start = utcnow() + timedelta(days=2)

    event = await event_service.create_event(
        author=organizer,
        data=EventCreate(
            title="Breathing workshop",
            description="Hands-on session",
            category=EventCategory.MEDITATION,
            date=start,
            end_date=start + timedelta(hours=1),
            location="Hall A",
            max_participants=2,
            is_external=True,
        ),
    )
    assert event.status == EventStatus.PENDING
    assert event.is_external is False

    await event_service.decide(event_id=str(event.id), admin=admin, action="approve")
    await event_service.register(event_id=str(event.id), user=guests[0])
    await event_service.register(event_id=str(event.id), user=guests[1])
    with pytest.raises(EventFull):
        await event_service.register(event_id=str(event.id), user=guests[2])

    stored = await Event.get(event.id)
    assert stored.current_participants == 2

    await event_service.unregister(event_id=str(event.id), user=guests[0])
    assert (await Event.get(event.id)).current_participants == 1


# --- Messaging ---


async def test_messages_track_unread_counts(emitter):
    ayse = await create_user("ayse")
    mehmet = await create_user("mehmet")

    await message_service.send_message(sender=ayse, receiver_id=str(mehmet.id), content="Hello", emitter=emitter)
    await message_service.send_message(sender=ayse, receiver_id=str(mehmet.id), content="Still there?", emitter=emitter)
    await message_service.send_message(sender=mehmet, receiver_id=str(ayse.id), content="Yes", emitter=emitter)
    await drain_pending_emits()

    assert await Conversation.find_all().count() == 1
    assert await message_service.unread_total(user=mehmet) == 2
    assert await message_service.unread_total(user=ayse) == 1
    assert len(emitter.named("receive_message")) == 3

    conversation = await message_service.conversation_with(user=mehmet, other_id=str(ayse.id))
    _, messages = await message_service.get_messages(conversation_id=str(conversation.id), user=mehmet)
    assert sorted(m.content for m in messages) == ["Hello", "Still there?", "Yes"]
    assert await message_service.unread_total(user=mehmet) == 0
    assert await Message.find(Message.receiver == mehmet.id, Message.is_read == False).count() == 0


async def test_cannot_message_yourself():
    ayse = await create_user("ayse")
    with pytest.raises(Conflict):
        await message_service.send_message(sender=ayse, receiver_id=str(ayse.id), content="me")


# --- Follow / account removal ---


async def test_follow_toggle_and_account_deletion():
    admin = await create_user("admin", Role.ADMIN)
    ayse = await create_user("ayse")
    mehmet = await create_user("mehmet")

    assert await user_service.toggle_follow(user=ayse, target_id=str(mehmet.id)) is True
    assert (await User.get(mehmet.id)).followers == [ayse.id]
    [follow] = await Notification.find(Notification.type == NotificationType.FOLLOW).to_list()
    assert follow.recipient == mehmet.id

    with pytest.raises(Conflict):
        await user_service.toggle_follow(user=ayse, target_id=str(ayse.id))

    await create_post(mehmet)
    await user_service.delete_user(user_id=str(mehmet.id), admin=admin)
    assert await Post.find_all().count() == 0
    assert (await User.get(ayse.id)).following == []

    items, unread = await notification_service.list_notifications(user=mehmet)
    assert [n.type for n in items] == [NotificationType.FOLLOW]
    assert unread == 1
