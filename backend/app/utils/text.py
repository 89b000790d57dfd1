import math
import re
import unicodedata
from typing import Optional, Type

from beanie import Document
from beanie import PydanticObjectId as OID

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")

# Letters NFKD does not decompose to ASCII
_TRANSLITERATE = str.maketrans({"ı": "i", "ß": "ss", "ø": "o", "đ": "d", "ł": "l"})


def slugify(text: str) -> str:
    value = unicodedata.normalize("NFKD", text.lower().translate(_TRANSLITERATE))
    value = value.encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG_CHARS.sub("-", value).strip("-")


async def unique_slug(model: Type[Document], title: str, exclude_id: Optional[OID] = None) -> str:
    """Slug for ``title`` that no other document of ``model`` uses (``-1``, ``-2``... suffixes)."""
    base = slugify(title) or model.__name__.lower()
    candidate = base
    counter = 1
    while True:
        query = {"slug": candidate}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if await model.find_one(query) is None:
            return candidate
        candidate = f"{base}-{counter}"
        counter += 1


def reading_time(content: str, words_per_minute: int = 200) -> int:
    words = len(content.split())
    return max(1, math.ceil(words / words_per_minute))


def contains_pattern(term: str) -> dict:
    """Case-insensitive substring match usable in a Mongo filter."""
    return {"$regex": re.escape(term.strip()), "$options": "i"}
