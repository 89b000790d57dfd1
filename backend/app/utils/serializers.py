"""Document → response schema helpers shared by the routers and services."""
from typing import Dict, Iterable, List, Optional

from beanie import PydanticObjectId as OID
from beanie.operators import In

from app.constants import ANONYMOUS_AUTHOR, EventStatus, Role
from app.models import (
    User,
    Post,
    Blog,
    Comment,
    Event,
    EventPost,
    Message,
    Notification,
    Disease,
    Diet,
    Exercise,
)
from app.models.moderation import ModeratedDocument
from app.schemas import (
    UserBrief,
    UserOut,
    DoctorInfoOut,
    MedicalConditionOut,
    PostOut,
    BlogOut,
    BlogReferenceIn,
    CommentOut,
    EventOut,
    EventPostOut,
    MessageOut,
    NotificationOut,
    DiseaseOut,
    DietOut,
    ExerciseOut,
)
from app.utils.dates import as_utc, utcnow

DELETED_AUTHOR = UserBrief(id=None, username="deleted", first_name="Deleted", last_name="User")


def _oid_str(value: Optional[OID]) -> Optional[str]:
    return str(value) if value is not None else None


def user_brief(user: User) -> UserBrief:
    return UserBrief(
        id=str(user.id),
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        profile_picture=user.profile_picture,
        role=user.role,
    )


async def load_user_briefs(ids: Iterable[Optional[OID]]) -> Dict[OID, UserBrief]:
    """Fetch the users referenced by ``ids`` in one query."""
    unique = list({i for i in ids if i is not None})
    if not unique:
        return {}
    users = await User.find(In(User.id, unique)).to_list()
    return {u.id: user_brief(u) for u in users}


def user_out(user: User) -> UserOut:
    return UserOut(
        id=str(user.id),
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        profile_picture=user.profile_picture,
        bio=user.bio,
        date_of_birth=user.date_of_birth,
        is_active=user.is_active,
        is_verified=user.is_verified,
        last_login=user.last_login,
        followers_count=len(user.followers),
        following_count=len(user.following),
        doctor_info=DoctorInfoOut.model_validate(user.doctor_info) if user.doctor_info else None,
        medical_conditions=[
            MedicalConditionOut(
                id=str(c.id),
                disease_id=str(c.disease_id),
                diagnosis_date=c.diagnosis_date,
                notes=c.notes,
            )
            for c in user.medical_conditions
        ],
        created_at=user.created_at,
    )


def reaction_state(item: ModeratedDocument, viewer: Optional[User]) -> dict:
    viewer_id = viewer.id if viewer else None
    return {
        "like_count": len(item.likes),
        "dislike_count": len(item.dislikes),
        "is_liked": viewer_id is not None and viewer_id in item.likes,
        "is_disliked": viewer_id is not None and viewer_id in item.dislikes,
    }


def _author(author_id: OID, briefs: Dict[OID, UserBrief]) -> UserBrief:
    return briefs.get(author_id) or DELETED_AUTHOR


def masked_author(
    author_id: OID, is_anonymous: bool, briefs: Dict[OID, UserBrief], viewer: Optional[User]
) -> UserBrief:
    """Anonymous authors are hidden from everyone except admins."""
    if is_anonymous and not (viewer and viewer.role == Role.ADMIN):
        return UserBrief(**ANONYMOUS_AUTHOR)
    return _author(author_id, briefs)


def post_out(
    post: Post,
    briefs: Dict[OID, UserBrief],
    viewer: Optional[User],
    comment_count: Optional[int] = None,
) -> PostOut:
    return PostOut(
        id=str(post.id),
        author=masked_author(post.author_id, post.is_anonymous, briefs, viewer),
        title=post.title,
        content=post.content,
        category=post.category,
        tags=post.tags,
        images=post.images,
        is_anonymous=post.is_anonymous,
        is_sensitive=post.is_sensitive,
        views=post.views,
        medical_advice=post.medical_advice,
        symptoms=post.symptoms,
        treatments=post.treatments,
        slug=post.slug,
        is_approved=post.is_approved,
        is_reported=post.is_reported,
        report_count=post.report_count,
        comment_count=comment_count,
        created_at=post.created_at,
        updated_at=post.updated_at,
        **reaction_state(post, viewer),
    )


def blog_out(
    blog: Blog,
    briefs: Dict[OID, UserBrief],
    viewer: Optional[User],
    comment_count: Optional[int] = None,
) -> BlogOut:
    return BlogOut(
        id=str(blog.id),
        author=_author(blog.author_id, briefs),
        title=blog.title,
        content=blog.content,
        excerpt=blog.excerpt,
        category=blog.category,
        tags=blog.tags,
        featured_image=blog.featured_image,
        is_published=blog.is_published,
        is_featured=blog.is_featured,
        views=blog.views,
        reading_time=blog.reading_time,
        medical_disclaimer=blog.medical_disclaimer,
        references=[BlogReferenceIn(title=r.title, url=r.url) for r in blog.references],
        seo_title=blog.seo_title,
        seo_description=blog.seo_description,
        slug=blog.slug,
        is_approved=blog.is_approved,
        is_reported=blog.is_reported,
        report_count=blog.report_count,
        comment_count=comment_count,
        created_at=blog.created_at,
        updated_at=blog.updated_at,
        **reaction_state(blog, viewer),
    )


def comment_out(
    comment: Comment,
    briefs: Dict[OID, UserBrief],
    viewer: Optional[User],
    replies: Optional[List[CommentOut]] = None,
) -> CommentOut:
    return CommentOut(
        id=str(comment.id),
        post_or_blog=str(comment.post_or_blog),
        post_type=comment.post_type,
        author=masked_author(comment.author_id, comment.is_anonymous, briefs, viewer),
        content=comment.content,
        is_anonymous=comment.is_anonymous,
        is_helpful=comment.is_helpful,
        medical_advice=comment.medical_advice,
        parent_comment=_oid_str(comment.parent_comment),
        replies=replies or [],
        reply_count=len(comment.replies),
        is_approved=comment.is_approved,
        is_reported=comment.is_reported,
        report_count=comment.report_count,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        **reaction_state(comment, viewer),
    )


def event_post_out(post: EventPost, briefs: Dict[OID, UserBrief], viewer: Optional[User]) -> EventPostOut:
    return EventPostOut(
        id=str(post.id),
        event_id=str(post.event_id),
        author=_author(post.author_id, briefs),
        title=post.title,
        content=post.content,
        images=post.images,
        is_approved=post.is_approved,
        is_reported=post.is_reported,
        report_count=post.report_count,
        created_at=post.created_at,
        **reaction_state(post, viewer),
    )


def event_out(
    event: Event,
    briefs: Dict[OID, UserBrief],
    viewer: Optional[User],
    with_can_register: bool = False,
) -> EventOut:
    is_registered = viewer is not None and event.is_registered(viewer.id)
    is_owner = viewer is not None and event.author_id == viewer.id
    can_register = None
    if with_can_register:
        can_register = (
            viewer is not None
            and event.status == EventStatus.ACTIVE
            and not event.is_full
            and not is_registered
            and as_utc(event.date) > utcnow()
        )
    return EventOut(
        id=str(event.id),
        title=event.title,
        description=event.description,
        category=event.category,
        instructor=event.instructor,
        instructor_title=event.instructor_title,
        date=event.date,
        end_date=event.end_date,
        location=event.location,
        location_address=event.location_address,
        max_participants=event.max_participants,
        current_participants=event.current_participants,
        available_spots=max(0, event.max_participants - event.current_participants),
        price=event.price,
        is_online=event.is_online,
        is_external=event.is_external,
        organizer=event.organizer,
        organizer_type=event.organizer_type,
        tags=event.tags,
        requirements=event.requirements,
        image=event.image,
        status=event.status,
        author=briefs.get(event.author_id),
        rejection_reason=event.rejection_reason,
        approved_at=event.approved_at,
        is_reported=event.is_reported,
        report_count=event.report_count,
        is_registered=is_registered,
        is_owner=is_owner,
        can_register=can_register,
        created_at=event.created_at,
    )


def message_out(message: Message) -> MessageOut:
    return MessageOut(
        id=str(message.id),
        conversation_id=str(message.conversation_id),
        sender=str(message.sender),
        receiver=str(message.receiver),
        content=message.content,
        is_read=message.is_read,
        created_at=message.created_at,
    )


def notification_out(notification: Notification, briefs: Dict[OID, UserBrief]) -> NotificationOut:
    return NotificationOut(
        id=str(notification.id),
        recipient=str(notification.recipient),
        sender=briefs.get(notification.sender),
        type=notification.type,
        post=_oid_str(notification.post),
        post_type=notification.post_type,
        comment=_oid_str(notification.comment),
        is_read=notification.is_read,
        created_at=notification.created_at,
    )


def disease_out(disease: Disease) -> DiseaseOut:
    return DiseaseOut(
        id=str(disease.id),
        name=disease.name,
        description=disease.description,
        category=disease.category,
        symptoms=disease.symptoms,
        common_treatments=disease.common_treatments,
        severity=disease.severity,
        prevalence=disease.prevalence,
        tags=disease.tags,
        is_active=disease.is_active,
        created_at=disease.created_at,
    )


def diet_out(diet: Diet, completed_today: bool = False) -> DietOut:
    last = diet.completion_history[-1].completed_at if diet.completion_history else None
    return DietOut(
        id=str(diet.id),
        name=diet.name,
        description=diet.description,
        duration=diet.duration,
        period=diet.period,
        custom_period=diet.custom_period,
        is_active=diet.is_active,
        start_date=diet.start_date,
        end_date=diet.end_date,
        completed_count=diet.completed_count,
        completed_today=completed_today,
        last_completed_at=last,
        created_at=diet.created_at,
    )


def exercise_out(exercise: Exercise) -> ExerciseOut:
    return ExerciseOut(
        id=str(exercise.id),
        title=exercise.title,
        description=exercise.description,
        duration=exercise.duration,
        calories=exercise.calories,
        type=exercise.type,
        date=exercise.date,
        time=exercise.time,
        created_at=exercise.created_at,
    )
