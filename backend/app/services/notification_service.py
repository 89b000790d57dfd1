from typing import Optional, Tuple, List

from beanie import PydanticObjectId as OID
from beanie.operators import Set

from app.constants import ContentType, NotificationType
from app.models import Notification, User
from app.services.realtime import Emitter, schedule_emit, user_room
from app.utils.ids import get_or_404
from app.exceptions import Forbidden
from app.utils.logger import get_logger

logger = get_logger("notification_service")


def _payload(notification: Notification, sender_info: Optional[dict]) -> dict:
    return {
        "id": str(notification.id),
        "recipient": str(notification.recipient),
        "sender": sender_info or str(notification.sender),
        "type": notification.type.value,
        "post": str(notification.post) if notification.post else None,
        "post_type": notification.post_type.value if notification.post_type else None,
        "comment": str(notification.comment) if notification.comment else None,
        "created_at": notification.created_at.isoformat(),
        "is_read": False,
    }


async def notify(
    emitter: Optional[Emitter],
    *,
    recipient: OID,
    sender: OID,
    type: NotificationType,
    post: Optional[OID] = None,
    post_type: Optional[ContentType] = None,
    comment: Optional[OID] = None,
    sender_info: Optional[dict] = None,
) -> Optional[Notification]:
    """Persist a notification and push it to the recipient's room.

    Self-actions never notify. Failures are logged and swallowed so the
    action that triggered the notification is never affected.
    """
    if recipient == sender:
        return None
    try:
        notification = Notification(
            recipient=recipient,
            sender=sender,
            type=type,
            post=post,
            post_type=post_type,
            comment=comment,
        )
        await notification.insert()
    except Exception:
        logger.exception(f"Failed to store {type.value} notification for {recipient}")
        return None

    schedule_emit(emitter, "new_notification", _payload(notification, sender_info), room=user_room(recipient))
    return notification


async def list_notifications(*, user: User, limit: int = 20) -> Tuple[List[Notification], int]:
    """Newest notifications plus the unread total."""
    items = (
        await Notification.find(Notification.recipient == user.id)
        .sort(-Notification.created_at)
        .limit(limit)
        .to_list()
    )
    unread = await Notification.find(
        Notification.recipient == user.id, Notification.is_read == False
    ).count()
    return items, unread


async def mark_read(*, notification_id: str, user: User) -> Notification:
    notification = await get_or_404(Notification, notification_id, "Notification")
    if notification.recipient != user.id:
        raise Forbidden("You can only update your own notifications")
    if not notification.is_read:
        notification.is_read = True
        await notification.save()
    return notification


async def mark_all_read(*, user: User) -> None:
    await Notification.find(
        Notification.recipient == user.id, Notification.is_read == False
    ).update(Set({Notification.is_read: True}))
