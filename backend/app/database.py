from app.config import get_settings
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError
from beanie import init_beanie

settings = get_settings()

_mongo_client: AsyncMongoClient | None = None


def document_models() -> list:
    """All Beanie documents registered by the app."""
    from app.models import (
        User,
        Post,
        Blog,
        Comment,
        Event,
        EventPost,
        Notification,
        Conversation,
        Message,
        Disease,
        Diet,
        Exercise,
    )
    return [
        User,
        Post,
        Blog,
        Comment,
        Event,
        EventPost,
        Notification,
        Conversation,
        Message,
        Disease,
        Diet,
        Exercise,
    ]


async def init_db() -> None:
    """Initialize MongoDB (Beanie) and register document models."""
    global _mongo_client
    _mongo_client = AsyncMongoClient(settings.MONGODB_URI)
    # Database name comes from the URI path, query params stripped
    db_name = settings.MONGODB_URI.rsplit("/", 1)[-1].split("?")[0]
    if not db_name:
        db_name = "patient_social"
    await init_beanie(database=_mongo_client[db_name], document_models=document_models())


async def close_db() -> None:
    global _mongo_client
    if _mongo_client is not None:
        await _mongo_client.close()
        _mongo_client = None


async def ping_db() -> bool:
    """Check MongoDB connectivity."""
    if not _mongo_client:
        return False
    try:
        await _mongo_client.admin.command("ping")
        return True
    except PyMongoError:
        return False
