# wecare/services/users.py
import logging
from typing import Optional, Tuple

from wecare.core.errors import AuthorizationError, NotFoundError, ValidationError
from wecare.core.policy import is_admin
from wecare.core.security import Principal, hash_password, token_for, verify_password
from wecare.core.states import DonationStatus, Role
from wecare.services.uploads import ImageStore

logger = logging.getLogger(__name__)

SELF_REGISTER_ROLES = {Role.DONOR.value, Role.RECEIVER.value}

def _location(latitude, longitude) -> dict:
    if latitude is None and longitude is None:
        return {}
    try:
        lat, lng = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise ValidationError("Invalid coordinates")
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        raise ValidationError("Invalid coordinates")
    return {"latitude": lat, "longitude": lng}

async def register(repo, name: str, email: str, phone: str, password: str, role: str,
                   latitude: Optional[float] = None, longitude: Optional[float] = None) -> Tuple[str, dict]:
    if role not in SELF_REGISTER_ROLES:
        raise ValidationError("Invalid role")
    if not (name or "").strip() or not password:
        raise ValidationError("Name and password are required")
    user = await repo.create_user({
        "name": name.strip(),
        "email": email.lower(),
        "phone": phone,
        "password_hash": hash_password(password),
        "role": role,
        "avatar": None,
        "bio": None,
        **_location(latitude, longitude),
    })
    logger.info("registered %s user %s", role, user["id"])
    return token_for(user), user

async def login(repo, email: str, password: str) -> Tuple[str, dict]:
    user = await repo.find_user_by_email(email)
    if not user or not verify_password(password, user.pop("password_hash", "")):
        raise ValidationError("Invalid credentials")
    return token_for(user), user

async def get_profile(repo, principal: Principal) -> dict:
    user = await repo.get_user(principal.user_id)
    if not user:
        raise NotFoundError("User not found")
    return user

async def update_profile(repo, principal: Principal, changes: dict,
                         avatar=None, store: Optional[ImageStore] = None) -> dict:
    """Apply name/email/phone/bio/location changes; ``None`` values are left untouched."""
    fields = {k: v for k, v in changes.items() if k in ("name", "email", "phone", "bio") and v is not None}
    if "email" in fields:
        fields["email"] = fields["email"].lower()
    fields.update(_location(changes.get("latitude"), changes.get("longitude")))

    urls = []
    if avatar is not None:
        store = store or ImageStore()
        store.validate([avatar])
        urls = await store.save([avatar])
        fields["avatar"] = urls[0]
    try:
        user = await repo.update_user(principal.user_id, fields)
    except Exception:
        if store:
            await store.discard(urls)
        raise
    if not user:
        raise NotFoundError("User not found")
    return user

async def delete_user(repo, principal: Principal, user_id: str) -> None:
    if not is_admin(principal.role):
        raise AuthorizationError("Admin access required")
    user = await repo.get_user(user_id)
    if not user:
        raise NotFoundError("User not found")
    if user["role"] == Role.ADMIN.value:
        raise ValidationError("Cannot delete admin users")
    if not await repo.delete_user(user_id):
        raise NotFoundError("User not found")
    logger.info("user %s and their donations deleted by %s", user_id, principal.user_id)

async def stats(repo) -> dict:
    return {
        "total_donations": await repo.count_donations(),
        "total_users": await repo.count_users(exclude_role=Role.ADMIN.value),
        "pending_donations": await repo.count_donations(DonationStatus.PENDING.value),
        "completed_donations": await repo.count_donations(DonationStatus.COMPLETED.value),
    }

async def seed(repo, admin_email: str, admin_password: str) -> None:
    await repo.seed_categories()
    await repo.ensure_admin({
        "name": "Admin",
        "email": admin_email.lower(),
        "phone": "1234567890",
        "password_hash": hash_password(admin_password),
        "role": Role.ADMIN.value,
        "avatar": None,
        "bio": None,
    })
