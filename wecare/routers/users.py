from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import EmailStr

from wecare.core.security import Principal, get_principal
from wecare.deps import get_image_store, get_repo
from wecare.models.schemas import UserOut
from wecare.services import users

router = APIRouter(prefix="/users", tags=["users"])

@router.get("/profile", response_model=UserOut)
async def get_profile(principal: Principal = Depends(get_principal), repo=Depends(get_repo)):
    return await users.get_profile(repo, principal)

# multipart so the avatar can travel with the text fields
@router.put("/profile", response_model=UserOut)
async def update_profile(
    name: Optional[str] = Form(None),
    email: Optional[EmailStr] = Form(None),
    phone: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    principal: Principal = Depends(get_principal),
    repo=Depends(get_repo),
    store=Depends(get_image_store),
):
    changes = {"name": name, "email": email, "phone": phone, "bio": bio,
               "latitude": latitude, "longitude": longitude}
    return await users.update_profile(repo, principal, changes, avatar=avatar, store=store)
