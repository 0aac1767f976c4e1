from typing import List

from fastapi import APIRouter, Depends

from wecare.deps import get_repo
from wecare.models.schemas import CategoryOut

router = APIRouter(prefix="/categories", tags=["categories"])

@router.get("", response_model=List[CategoryOut])
async def list_categories(repo=Depends(get_repo)):
    return await repo.list_categories()
