from fastapi import APIRouter, Depends, status

from wecare.deps import get_repo
from wecare.models.schemas import AuthOut, LoginIn, RegisterIn
from wecare.services import users

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterIn, repo=Depends(get_repo)):
    token, user = await users.register(
        repo, body.name, body.email, body.phone, body.password, body.role,
        latitude=body.latitude, longitude=body.longitude,
    )
    return {"token": token, "user": user}

@router.post("/login", response_model=AuthOut)
async def login(body: LoginIn, repo=Depends(get_repo)):
    token, user = await users.login(repo, body.email, body.password)
    return {"token": token, "user": user}
