from fastapi import APIRouter, status

from app.deps import CurrentUser, Realtime
from app.models import User
from app.schemas import ConversationOut, MessageIn
from app.services import message_service
from app.services.realtime import is_user_online
from app.utils.serializers import load_user_briefs, message_out

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(payload: MessageIn, current: User = CurrentUser, emitter=Realtime):
    message = await message_service.send_message(
        sender=current, receiver_id=payload.receiver_id, content=payload.content, emitter=emitter
    )
    return {"message": "Message sent", "data": message_out(message)}


@router.get("/conversations")
async def list_conversations(current: User = CurrentUser):
    rows = await message_service.list_conversations(user=current)
    briefs = await load_user_briefs(c.other_participant(current.id) for c, _ in rows)
    conversations = []
    for conversation, last in rows:
        other = conversation.other_participant(current.id)
        conversations.append(
            ConversationOut(
                id=str(conversation.id),
                other_participant=briefs.get(other),
                is_online=is_user_online(other),
                last_message=message_out(last) if last else None,
                unread_count=conversation.unread_for(current.id),
                updated_at=conversation.updated_at,
            )
        )
    return {"message": "Conversations retrieved", "conversations": conversations}


@router.get("/unread-count")
async def unread_count(current: User = CurrentUser):
    return {"message": "Unread count", "unread_count": await message_service.unread_total(user=current)}


@router.get("/with/{user_id}")
async def conversation_with(user_id: str, current: User = CurrentUser):
    """Look up the conversation with ``user_id`` without creating it."""
    conversation = await message_service.conversation_with(user=current, other_id=user_id)
    return {
        "message": "Conversation retrieved",
        "conversation_id": str(conversation.id),
        "unread_count": conversation.unread_for(current.id),
    }


@router.get("/{conversation_id}")
async def get_messages(conversation_id: str, current: User = CurrentUser):
    """Messages oldest first; reading resets the caller's unread counter."""
    conversation, messages = await message_service.get_messages(
        conversation_id=conversation_id, user=current
    )
    other = conversation.other_participant(current.id)
    briefs = await load_user_briefs([other])
    return {
        "message": "Messages retrieved",
        "conversation_id": str(conversation.id),
        "other_participant": briefs.get(other),
        "messages": [message_out(m) for m in messages],
    }


@router.patch("/{conversation_id}/read")
async def mark_read(conversation_id: str, current: User = CurrentUser):
    await message_service.mark_conversation_read(conversation_id=conversation_id, user=current)
    return {"message": "Conversation marked as read"}
