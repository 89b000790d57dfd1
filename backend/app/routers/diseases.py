from typing import Optional

from fastapi import APIRouter, Query, status

from app.constants import DiseaseCategory, Severity
from app.deps import AdminUser, Page
from app.models import User
from app.schemas import DiseaseCreate, DiseaseUpdate
from app.services import disease_service
from app.utils.pagination import build_pagination
from app.utils.serializers import disease_out

router = APIRouter(prefix="/diseases", tags=["diseases"])


@router.get("")
async def list_diseases(
    category: Optional[DiseaseCategory] = None,
    severity: Optional[Severity] = None,
    paging=Page,
):
    page, limit = paging
    diseases, total = await disease_service.list_diseases(
        page=page, limit=limit, category=category, severity=severity
    )
    return {
        "message": "Diseases retrieved",
        "diseases": [disease_out(d) for d in diseases],
        "pagination": build_pagination(page, limit, total),
    }


@router.get("/search")
async def search_diseases(q: str = Query(..., min_length=1), limit: int = Query(20, ge=1, le=50)):
    diseases = await disease_service.search_diseases(q=q, limit=limit)
    return {"message": "Search results", "diseases": [disease_out(d) for d in diseases]}


@router.get("/stats")
async def disease_stats():
    return {"message": "Disease stats", "stats": await disease_service.disease_stats()}


@router.get("/{disease_id}")
async def get_disease(disease_id: str):
    disease = await disease_service.get_disease(disease_id)
    return {"message": "Disease retrieved", "disease": disease_out(disease)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_disease(payload: DiseaseCreate, admin: User = AdminUser):
    disease = await disease_service.create_disease(data=payload, admin=admin)
    return {"message": "Disease created successfully", "disease": disease_out(disease)}


@router.put("/{disease_id}")
async def update_disease(disease_id: str, payload: DiseaseUpdate, admin: User = AdminUser):
    disease = await disease_service.update_disease(disease_id=disease_id, data=payload)
    return {"message": "Disease updated successfully", "disease": disease_out(disease)}


@router.delete("/{disease_id}")
async def delete_disease(disease_id: str, admin: User = AdminUser):
    await disease_service.delete_disease(disease_id=disease_id, admin=admin)
    return {"message": "Disease deleted successfully"}
