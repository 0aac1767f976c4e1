from fastapi import APIRouter, Depends

from wecare.core.security import Principal, get_principal
from wecare.deps import get_llm, get_repo
from wecare.models.schemas import MatchesOut
from wecare.services.matching import match_for_user

router = APIRouter(prefix="/ai", tags=["ai"])

@router.get("/match/{user_id}", response_model=MatchesOut)
async def match(user_id: str,
                principal: Principal = Depends(get_principal),
                repo=Depends(get_repo),
                llm=Depends(get_llm)):
    return {"matches": await match_for_user(repo, llm, principal, user_id)}
