from typing import Type, TypeVar

from beanie import Document
from beanie import PydanticObjectId as OID
from bson.errors import InvalidId

from app.exceptions import NotFound

D = TypeVar("D", bound=Document)


def to_oid(value, label: str = "Resource") -> OID:
    """Parse an id coming from a path/body; malformed ids resolve to nothing."""
    if isinstance(value, OID):
        return value
    try:
        return OID(value)
    except (InvalidId, TypeError, ValueError):
        raise NotFound(f"{label} not found")


async def get_or_404(model: Type[D], raw_id, label: str) -> D:
    doc = await model.get(to_oid(raw_id, label))
    if doc is None:
        raise NotFound(f"{label} not found")
    return doc
