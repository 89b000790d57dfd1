"""Direct messages between two users.

A conversation is identified by the canonical sorted pair of its
participants, so (a, b) and (b, a) always resolve to the same document.
"""
from typing import List, Optional, Tuple

from beanie import PydanticObjectId as OID
from beanie.operators import Set
from pymongo.errors import DuplicateKeyError

from app.constants import NotificationType
from app.exceptions import Conflict, Forbidden, NotFound
from app.models import Conversation, Message, User, conversation_key
from app.services.notification_service import notify
from app.services.realtime import Emitter, schedule_emit, user_room
from app.utils.dates import utcnow
from app.utils.ids import get_or_404, to_oid
from app.utils.logger import get_logger
from app.utils.serializers import message_out, user_brief

logger = get_logger("message_service")


async def get_or_create_conversation(a: OID, b: OID) -> Conversation:
    key = conversation_key(a, b)
    conversation = await Conversation.find_one(Conversation.participants_key == key)
    if conversation:
        return conversation
    conversation = Conversation(
        participants=sorted([a, b], key=str),
        participants_key=key,
        unread_counts={str(a): 0, str(b): 0},
    )
    try:
        await conversation.insert()
    except DuplicateKeyError:
        # Lost a race with a concurrent first message; use the winner's row
        conversation = await Conversation.find_one(Conversation.participants_key == key)
        if conversation is None:
            raise
    return conversation


async def send_message(
    *,
    sender: User,
    receiver_id,
    content: str,
    emitter: Optional[Emitter] = None,
) -> Message:
    """Persist a message, bump the receiver's unread counter and push it live."""
    content = (content or "").strip()
    if not content:
        raise Conflict("Message content cannot be empty")
    receiver = await get_or_404(User, receiver_id, "Receiver")
    if receiver.id == sender.id:
        raise Conflict("You cannot send a message to yourself")

    conversation = await get_or_create_conversation(sender.id, receiver.id)
    message = Message(
        conversation_id=conversation.id,
        sender=sender.id,
        receiver=receiver.id,
        content=content,
    )
    await message.insert()

    await Conversation.find_one(Conversation.id == conversation.id).update(
        {
            "$set": {"last_message": message.id, "updated_at": utcnow()},
            "$inc": {f"unread_counts.{receiver.id}": 1},
        }
    )

    payload = message_out(message).model_dump(mode="json")
    payload["sender_info"] = user_brief(sender).model_dump(mode="json")
    schedule_emit(emitter, "receive_message", payload, room=user_room(receiver.id))
    await notify(
        emitter,
        recipient=receiver.id,
        sender=sender.id,
        type=NotificationType.MESSAGE,
        sender_info=user_brief(sender).model_dump(mode="json"),
    )
    return message


async def list_conversations(*, user: User) -> List[Tuple[Conversation, Optional[Message]]]:
    """The user's conversations, most recently active first."""
    conversations = (
        await Conversation.find({"participants": user.id})
        .sort(-Conversation.updated_at)
        .to_list()
    )
    last_ids = [c.last_message for c in conversations if c.last_message]
    last_messages = {}
    if last_ids:
        last_messages = {m.id: m for m in await Message.find({"_id": {"$in": last_ids}}).to_list()}
    return [(c, last_messages.get(c.last_message)) for c in conversations]


async def _participant_conversation(conversation_id: str, user: User) -> Conversation:
    conversation = await get_or_404(Conversation, conversation_id, "Conversation")
    if user.id not in conversation.participants:
        raise Forbidden("You are not a participant of this conversation")
    return conversation


async def mark_conversation_read(*, conversation_id: str, user: User) -> Conversation:
    """Reset the user's unread counter and flag incoming messages as read."""
    conversation = await _participant_conversation(conversation_id, user)
    await Message.find(
        Message.conversation_id == conversation.id,
        Message.receiver == user.id,
        Message.is_read == False,
    ).update(Set({Message.is_read: True}))
    await Conversation.find_one(Conversation.id == conversation.id).update(
        {"$set": {f"unread_counts.{user.id}": 0}}
    )
    conversation.unread_counts[str(user.id)] = 0
    return conversation


async def get_messages(*, conversation_id: str, user: User) -> Tuple[Conversation, List[Message]]:
    """All messages of a conversation, oldest first; reading clears the unread counter."""
    conversation = await mark_conversation_read(conversation_id=conversation_id, user=user)
    messages = (
        await Message.find(Message.conversation_id == conversation.id)
        .sort(+Message.created_at)
        .to_list()
    )
    return conversation, messages


async def conversation_with(*, user: User, other_id: str) -> Conversation:
    other = to_oid(other_id, "User")
    conversation = await Conversation.find_one(
        Conversation.participants_key == conversation_key(user.id, other)
    )
    if conversation is None:
        raise NotFound("Conversation not found")
    return conversation


async def unread_total(*, user: User) -> int:
    conversations = await Conversation.find({"participants": user.id}).to_list()
    return sum(c.unread_for(user.id) for c in conversations)
