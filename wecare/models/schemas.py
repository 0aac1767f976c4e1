from typing import Optional, List, Literal
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime

# --------------------------
# Users & Auth
# --------------------------
Role = Literal["donor", "receiver", "admin"]
Status = Literal["pending", "accepted", "completed"]

class RegisterIn(BaseModel):
    name: str
    email: EmailStr
    phone: str = ""
    password: str
    role: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

class LoginIn(BaseModel):
    email: EmailStr
    password: str

class UserOut(BaseModel):
    id: str
    name: str
    email: EmailStr
    phone: Optional[str] = None
    role: Role
    avatar: Optional[str] = None
    bio: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[datetime] = None

class AuthOut(BaseModel):
    token: str
    user: UserOut

# --------------------------
# Categories
# --------------------------
class CategoryOut(BaseModel):
    id: str
    name: str
    icon: Optional[str] = None

# --------------------------
# Donations
# --------------------------
class DonorSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None

class DonationOut(BaseModel):
    id: str
    title: str
    description: str
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    category_icon: Optional[str] = None
    user_id: str
    receiver_id: Optional[str] = None
    status: Status
    latitude: float
    longitude: float
    images: List[str] = []
    donor_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class DonationDetailOut(DonationOut):
    user: Optional[DonorSummary] = None

class CreatedOut(BaseModel):
    id: str
    message: str = "Donation created successfully"

class MessageOut(BaseModel):
    message: str

# --------------------------
# Matching
# --------------------------
class MatchedDonation(DonationOut):
    distance_km: float

class MatchOut(BaseModel):
    id: str
    score: float = Field(ge=0, le=100)
    reason: str = ""
    donation: MatchedDonation

class MatchesOut(BaseModel):
    matches: List[MatchOut]

# --------------------------
# Admin
# --------------------------
class StatsOut(BaseModel):
    total_donations: int
    total_users: int
    pending_donations: int
    completed_donations: int
