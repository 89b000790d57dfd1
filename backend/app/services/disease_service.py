from collections import Counter
from typing import List, Optional, Tuple

from app.constants import DiseaseCategory, Severity
from app.exceptions import Conflict
from app.models import Disease, User
from app.schemas import DiseaseCreate, DiseaseUpdate
from app.utils.dates import utcnow
from app.utils.ids import get_or_404
from app.utils.logger import get_logger
from app.utils.pagination import page_skip
from app.utils.text import contains_pattern

logger = get_logger("disease_service")


async def list_diseases(
    *,
    page: int,
    limit: int,
    category: Optional[DiseaseCategory] = None,
    severity: Optional[Severity] = None,
) -> Tuple[List[Disease], int]:
    query: dict = {"is_active": True}
    if category:
        query["category"] = category.value
    if severity:
        query["severity"] = severity.value
    total = await Disease.find(query).count()
    diseases = (
        await Disease.find(query)
        .sort(+Disease.name)
        .skip(page_skip(page, limit))
        .limit(limit)
        .to_list()
    )
    return diseases, total


async def search_diseases(*, q: str, limit: int = 20) -> List[Disease]:
    pattern = contains_pattern(q)
    return (
        await Disease.find(
            {
                "is_active": True,
                "$or": [
                    {"name": pattern},
                    {"description": pattern},
                    {"symptoms": pattern},
                    {"tags": pattern},
                ],
            }
        )
        .sort(+Disease.name)
        .limit(limit)
        .to_list()
    )


async def get_disease(disease_id: str) -> Disease:
    return await get_or_404(Disease, disease_id, "Disease")


async def disease_stats() -> dict:
    """Catalogue breakdown plus how many users list each disease."""
    diseases = await Disease.find(Disease.is_active == True).to_list()
    users = await User.find({"medical_conditions.0": {"$exists": True}}).to_list()
    patients = Counter(c.disease_id for u in users for c in u.medical_conditions)
    names = {d.id: d.name for d in diseases}
    return {
        "total_diseases": len(diseases),
        "category_stats": [
            {"category": c, "count": n}
            for c, n in Counter(d.category.value for d in diseases).most_common()
        ],
        "severity_stats": [
            {"severity": s, "count": n}
            for s, n in Counter(d.severity.value for d in diseases).most_common()
        ],
        "top_diseases": [
            {"id": str(did), "name": names[did], "patients": n}
            for did, n in patients.most_common(10)
            if did in names
        ],
    }


async def create_disease(*, data: DiseaseCreate, admin: User) -> Disease:
    if await Disease.find_one(Disease.name == data.name):
        raise Conflict("A disease with this name already exists")
    disease = Disease(created_by=admin.id, **data.model_dump())
    await disease.insert()
    logger.info(f"Disease {disease.id} ({disease.name}) created by {admin.id}")
    return disease


async def update_disease(*, disease_id: str, data: DiseaseUpdate) -> Disease:
    disease = await get_disease(disease_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes and changes["name"] != disease.name:
        if await Disease.find_one(Disease.name == changes["name"]):
            raise Conflict("A disease with this name already exists")
    for field, value in changes.items():
        setattr(disease, field, value)
    disease.updated_at = utcnow()
    await disease.save()
    return disease


async def delete_disease(*, disease_id: str, admin: User) -> None:
    disease = await get_disease(disease_id)
    in_use = await User.find({"medical_conditions.disease_id": disease.id}).count()
    if in_use:
        raise Conflict(f"Disease is referenced by {in_use} user(s) and cannot be deleted")
    await disease.delete()
    logger.info(f"Disease {disease.id} deleted by {admin.id}")
