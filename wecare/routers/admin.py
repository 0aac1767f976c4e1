from typing import List

from fastapi import APIRouter, Depends, HTTPException

from wecare.core.policy import is_admin
from wecare.core.security import Principal, get_principal
from wecare.deps import get_repo
from wecare.models.schemas import DonationOut, MessageOut, StatsOut, UserOut
from wecare.services import users

async def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not is_admin(principal.role):
        raise HTTPException(status_code=403, detail="Admin access required")
    return principal

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

@router.get("/donations", response_model=List[DonationOut])
async def all_donations(repo=Depends(get_repo)):
    return await repo.list_donations()

@router.get("/users", response_model=List[UserOut])
async def all_users(repo=Depends(get_repo)):
    return await repo.list_users()

@router.get("/stats", response_model=StatsOut)
async def stats(repo=Depends(get_repo)):
    return await users.stats(repo)

@router.delete("/users/{user_id}", response_model=MessageOut)
async def delete_user(user_id: str, principal: Principal = Depends(require_admin), repo=Depends(get_repo)):
    await users.delete_user(repo, principal, user_id)
    return {"message": "User deleted successfully"}
