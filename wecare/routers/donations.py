# wecare/routers/donations.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from wecare.core.security import Principal, get_principal
from wecare.core.states import DonationStatus
from wecare.deps import get_image_store, get_repo
from wecare.models.schemas import CreatedOut, DonationDetailOut, DonationOut, MessageOut
from wecare.services import donations as svc

router = APIRouter(prefix="/donations", tags=["donations"])

@router.post("", response_model=CreatedOut, status_code=status.HTTP_201_CREATED)
async def create_donation(
    title: str = Form(""),
    description: str = Form(""),
    category_id: str = Form(""),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    principal: Principal = Depends(get_principal),
    repo=Depends(get_repo),
    store=Depends(get_image_store),
):
    draft = svc.DonationDraft(title=title, description=description, category_id=category_id,
                              latitude=latitude, longitude=longitude)
    new_id = await svc.create_donation(repo, principal, draft, images or [], store)
    return {"id": new_id}

# pending only, newest first
@router.get("", response_model=List[DonationOut])
async def list_available(repo=Depends(get_repo)):
    return await repo.list_donations(status=DonationStatus.PENDING.value)

@router.get("/user/{user_id}", response_model=List[DonationOut])
async def list_for_user(user_id: str, principal: Principal = Depends(get_principal), repo=Depends(get_repo)):
    return await svc.list_user_donations(repo, principal, user_id)

@router.get("/category/{category_id}", response_model=List[DonationOut])
async def list_for_category(category_id: str, repo=Depends(get_repo)):
    return await repo.list_donations(status=DonationStatus.PENDING.value, category_id=category_id)

@router.get("/{donation_id}", response_model=DonationDetailOut)
async def get_donation(donation_id: str, repo=Depends(get_repo)):
    return await svc.get_donation(repo, donation_id)

@router.put("/{donation_id}/accept", response_model=MessageOut)
async def accept(donation_id: str, principal: Principal = Depends(get_principal), repo=Depends(get_repo)):
    await svc.accept_donation(repo, principal, donation_id)
    return {"message": "Donation accepted successfully"}

@router.put("/{donation_id}/complete", response_model=MessageOut)
async def complete(donation_id: str, principal: Principal = Depends(get_principal), repo=Depends(get_repo)):
    await svc.complete_donation(repo, principal, donation_id)
    return {"message": "Donation marked as completed"}

@router.delete("/{donation_id}", response_model=MessageOut)
async def delete(donation_id: str, principal: Principal = Depends(get_principal), repo=Depends(get_repo)):
    await svc.delete_donation(repo, principal, donation_id)
    return {"message": "Donation deleted successfully"}
