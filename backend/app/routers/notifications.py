from fastapi import APIRouter, Query

from app.deps import CurrentUser
from app.models import User
from app.services import notification_service
from app.utils.serializers import load_user_briefs, notification_out

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(limit: int = Query(20, ge=1, le=100), current: User = CurrentUser):
    items, unread = await notification_service.list_notifications(user=current, limit=limit)
    briefs = await load_user_briefs(n.sender for n in items)
    return {
        "message": "Notifications retrieved",
        "notifications": [notification_out(n, briefs) for n in items],
        "unread_count": unread,
    }


@router.patch("/read-all")
async def mark_all_read(current: User = CurrentUser):
    await notification_service.mark_all_read(user=current)
    return {"message": "All notifications marked as read"}


@router.patch("/{notification_id}/read")
async def mark_read(notification_id: str, current: User = CurrentUser):
    notification = await notification_service.mark_read(notification_id=notification_id, user=current)
    briefs = await load_user_briefs([notification.sender])
    return {"message": "Notification marked as read", "notification": notification_out(notification, briefs)}
