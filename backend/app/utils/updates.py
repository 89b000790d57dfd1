"""Single-row atomic updates.

Services change stored documents with update operators (``$addToSet``,
``$pull``, ``$push``, ``$inc``, ``$set``) and then refresh their loaded copy
from the row MongoDB returns. A loaded document is never written back whole.
"""
from typing import Optional, Type

from beanie import Document, UpdateResponse


async def find_one_and_update(model: Type[Document], query: dict, update: dict) -> Optional[Document]:
    return await model.find_one(query).update(update, response_type=UpdateResponse.NEW_DOCUMENT)


async def apply_update(doc: Document, update: dict, conditions: Optional[dict] = None) -> bool:
    """Run ``update`` against ``doc``'s row and copy the stored result onto ``doc``.

    ``conditions`` are extra filters evaluated atomically with the write.
    Returns False when the row no longer matches (or no longer exists).
    """
    query = {"_id": doc.id}
    if conditions:
        query.update(conditions)
    fresh = await find_one_and_update(type(doc), query, update)
    if fresh is None:
        return False
    for field in type(doc).model_fields:
        setattr(doc, field, getattr(fresh, field))
    return True
