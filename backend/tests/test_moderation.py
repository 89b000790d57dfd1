"""
Tests for reactions, reports and the doctor approval workflow.
"""

import pytest
from beanie import PydanticObjectId as OID

from app.constants import ApprovalStatus, DEFAULT_REJECTION_REASON, NotificationType, PostCategory, ReportReason, Role
from app.exceptions import AlreadyApproved, AlreadyRejected, AlreadyReported, ApprovalRequired, NotADoctor
from app.models import Post, User
from app.services import moderation_service, post_service


@pytest.fixture
def post(memory_store):
    """A stored post; the returned object is one request's loaded copy."""
    item = Post.model_construct(
        id=OID(),
        author_id=OID(),
        title="Living with asthma",
        content="What helped me most",
        category=PostCategory.ASTHMA,
        likes=[],
        dislikes=[],
        reports=[],
        views=0,
    )
    memory_store.track(item)
    return item


@pytest.fixture
def notifications(monkeypatch):
    sent = []

    async def fake_notify(emitter, **kwargs):
        sent.append(kwargs)

    monkeypatch.setattr(moderation_service, "notify", fake_notify)
    return sent


# --- Like / dislike ---


def test_like_update_toggles():
    user_id = OID()
    item = Post.model_construct(likes=[], dislikes=[user_id])
    assert moderation_service.like_update(item, user_id) == {
        "$addToSet": {"likes": user_id},
        "$pull": {"dislikes": user_id},
    }
    item.likes = [user_id]
    assert moderation_service.like_update(item, user_id) == {"$pull": {"likes": user_id}}


def test_dislike_update_drops_like():
    user_id = OID()
    item = Post.model_construct(likes=[user_id], dislikes=[])
    assert moderation_service.dislike_update(item, user_id) == {
        "$addToSet": {"dislikes": user_id},
        "$pull": {"likes": user_id},
    }


async def test_interleaved_likes_from_two_requests_both_persist(post, make_user, memory_store, notifications):
    first, second = make_user(), make_user()
    copy_a = memory_store.load(post.id)
    copy_b = memory_store.load(post.id)

    assert await moderation_service.like(copy_a, actor=first) is True
    assert await moderation_service.like(copy_b, actor=second) is True

    assert memory_store.rows[post.id].likes == [first.id, second.id]
    assert copy_b.likes == [first.id, second.id]
    assert all("$set" not in u or "likes" not in u["$set"] for u in memory_store.updates)


async def test_like_then_dislike_never_leaves_both(post, make_user, memory_store, notifications):
    actor = make_user()
    await moderation_service.like(post, actor=actor)
    assert await moderation_service.dislike(post, actor=actor) is True
    assert post.likes == []
    assert post.dislikes == [actor.id]

    assert await moderation_service.like(post, actor=actor) is True
    stored = memory_store.rows[post.id]
    assert stored.likes == [actor.id]
    assert stored.dislikes == []


async def test_like_notifies_author_only_on_fresh_like(post, make_user, memory_store, notifications):
    actor = make_user()
    assert await moderation_service.like(post, actor=actor) is True
    assert await moderation_service.like(post, actor=actor) is False
    assert await moderation_service.like(post, actor=actor) is True

    assert len(notifications) == 2
    assert all(n["type"] == NotificationType.LIKE_POST for n in notifications)
    assert notifications[0]["recipient"] == post.author_id
    assert notifications[0]["post"] == post.id
    assert len(memory_store.updates) == 3


async def test_dislike_never_notifies(post, make_user, notifications):
    await moderation_service.dislike(post, actor=make_user())
    assert notifications == []
    assert len(post.dislikes) == 1


async def test_view_count_keeps_concurrent_like(post, make_user, memory_store, monkeypatch, notifications):
    viewer_copy = memory_store.load(post.id)

    async def fake_get_post(post_id):
        return viewer_copy

    monkeypatch.setattr(post_service, "get_post", fake_get_post)
    fan = make_user()
    await moderation_service.like(post, actor=fan)
    viewed = await post_service.view_post(str(post.id))

    assert viewed.views == 1
    assert viewed.likes == [fan.id]
    assert memory_store.rows[post.id].likes == [fan.id]


# --- Reports ---


async def test_report_once_per_user(post, make_user):
    actor = make_user()
    await moderation_service.report(post, actor=actor, reason=ReportReason.SPAM)
    assert post.report_count == 1
    assert post.is_reported is True

    with pytest.raises(AlreadyReported) as exc:
        await moderation_service.report(post, actor=actor, reason=ReportReason.OTHER)
    assert exc.value.status_code == 400
    assert post.report_count == 1


async def test_report_from_stale_copy_is_still_rejected(post, make_user, memory_store):
    actor = make_user()
    stale = memory_store.load(post.id)
    await moderation_service.report(post, actor=actor, reason=ReportReason.SPAM)

    with pytest.raises(AlreadyReported):
        await moderation_service.report(stale, actor=actor, reason=ReportReason.SPAM)
    stored = memory_store.rows[post.id]
    assert stored.report_count == 1
    assert len(stored.reports) == 1


async def test_reports_from_different_users_accumulate(post, make_user, memory_store):
    copy_a = memory_store.load(post.id)
    copy_b = memory_store.load(post.id)
    await moderation_service.report(copy_a, actor=make_user(), reason=ReportReason.SPAM)
    await moderation_service.report(copy_b, actor=make_user(), reason=ReportReason.HARASSMENT, description="rude")

    stored = memory_store.rows[post.id]
    assert stored.report_count == 2
    assert stored.reports[1].description == "rude"
    assert copy_b.report_count == 2


async def test_clear_reports(post, make_user):
    await moderation_service.report(post, actor=make_user(), reason=ReportReason.SPAM)
    await moderation_service.clear_reports(post)
    assert post.reports == []
    assert post.report_count == 0
    assert post.is_reported is False


def test_report_counters_follow_reports_before_persist():
    item = Post.model_construct(reports=[], report_count=7, is_reported=True)
    item.sync_report_state()
    assert item.report_count == 0
    assert item.is_reported is False


# --- Doctor approval ---


@pytest.fixture
def doctor_lookup(monkeypatch, memory_store):
    """Serve ``_load_doctor`` from a dict instead of MongoDB."""
    users = {}

    async def fake_get_or_404(model, raw_id, label):
        return users[str(raw_id)]

    def _store(user: User) -> User:
        users[str(user.id)] = memory_store.track(user)
        return user

    monkeypatch.setattr(moderation_service, "get_or_404", fake_get_or_404)
    return _store


async def test_approve_pending_doctor(make_user, doctor_lookup):
    admin = make_user(Role.ADMIN)
    doctor = doctor_lookup(make_user(Role.DOCTOR, ApprovalStatus.PENDING))

    result = await moderation_service.approve_doctor(doctor_id=str(doctor.id), admin=admin)
    assert result.doctor_info.approval_status == ApprovalStatus.APPROVED
    assert result.doctor_info.approved_by == admin.id
    assert result.doctor_info.approval_date is not None

    with pytest.raises(AlreadyApproved):
        await moderation_service.approve_doctor(doctor_id=str(doctor.id), admin=admin)


async def test_reject_uses_default_reason(make_user, doctor_lookup):
    admin = make_user(Role.ADMIN)
    doctor = doctor_lookup(make_user(Role.DOCTOR, ApprovalStatus.APPROVED))

    result = await moderation_service.reject_doctor(doctor_id=str(doctor.id), admin=admin)
    assert result.doctor_info.approval_status == ApprovalStatus.REJECTED
    assert result.doctor_info.rejection_reason == DEFAULT_REJECTION_REASON

    with pytest.raises(AlreadyRejected):
        await moderation_service.reject_doctor(doctor_id=str(doctor.id), admin=admin, reason="again")


async def test_rejected_doctor_can_be_approved_later(make_user, doctor_lookup):
    admin = make_user(Role.ADMIN)
    doctor = make_user(Role.DOCTOR, ApprovalStatus.REJECTED)
    doctor.doctor_info.rejection_reason = "Missing license"
    doctor_lookup(doctor)

    result = await moderation_service.approve_doctor(doctor_id=str(doctor.id), admin=admin)
    assert result.doctor_info.approval_status == ApprovalStatus.APPROVED
    assert result.doctor_info.rejection_reason is None


async def test_approval_applies_to_doctors_only(make_user, doctor_lookup):
    patient = doctor_lookup(make_user())
    with pytest.raises(NotADoctor):
        await moderation_service.approve_doctor(doctor_id=str(patient.id), admin=make_user(Role.ADMIN))


# --- Publishing gate ---


@pytest.fixture
def fresh_user(monkeypatch):
    """Make ``User.get`` return whatever the test stores."""
    current = {}

    async def fake_get(document_id, *args, **kwargs):
        return current.get(document_id)

    monkeypatch.setattr(User, "get", staticmethod(fake_get))
    return current


async def test_patients_publish_without_approval(make_user, fresh_user):
    await moderation_service.ensure_can_publish(make_user())


async def test_pending_doctor_cannot_publish(make_user, fresh_user):
    doctor = make_user(Role.DOCTOR, ApprovalStatus.PENDING)
    fresh_user[doctor.id] = doctor
    with pytest.raises(ApprovalRequired) as exc:
        await moderation_service.ensure_can_publish(doctor)
    assert exc.value.status_code == 403
    assert exc.value.extra == {"approval_status": "pending"}


async def test_approval_is_rechecked_from_storage(make_user, fresh_user):
    """A token issued while approved stops working once the doctor is rejected."""
    doctor = make_user(Role.DOCTOR, ApprovalStatus.APPROVED)
    stored = make_user(Role.DOCTOR, ApprovalStatus.REJECTED, id=doctor.id)
    stored.doctor_info.rejection_reason = "License expired"
    fresh_user[doctor.id] = stored

    with pytest.raises(ApprovalRequired) as exc:
        await moderation_service.ensure_doctor_approved(doctor)
    assert exc.value.extra["rejection_reason"] == "License expired"


async def test_approved_doctor_publishes(make_user, fresh_user):
    doctor = make_user(Role.DOCTOR, ApprovalStatus.APPROVED)
    fresh_user[doctor.id] = doctor
    assert await moderation_service.ensure_doctor_approved(doctor) is doctor
