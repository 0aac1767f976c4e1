# wecare/repos/base.py
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

DEFAULT_CATEGORIES = [
    ("Clothing", "shirt-outline"),
    ("Food", "fast-food-outline"),
    ("Furniture", "bed-outline"),
    ("Electronics", "laptop-outline"),
    ("Books", "book-outline"),
    ("Toys", "game-controller-outline"),
    ("Medical", "medical-outline"),
    ("Other", "cube-outline"),
]

USER_FIELDS = ("name", "email", "phone", "role", "avatar", "bio", "latitude", "longitude",
               "created_at", "updated_at")

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def public_user(doc: Optional[dict], with_hash: bool = False) -> Optional[dict]:
    if not doc:
        return None
    out = {"id": str(doc["_id"])}
    for k in USER_FIELDS:
        out[k] = doc.get(k)
    if with_hash:
        out["password_hash"] = doc.get("password_hash", "")
    return out

def donor_summary(user: Optional[dict]) -> Optional[dict]:
    if not user:
        return None
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "phone": user.get("phone"),
        "avatar": user.get("avatar"),
    }

def hydrate(doc: dict,
            categories: Dict[str, dict],
            users: Dict[str, dict],
            images: Iterable[str],
            with_user: bool = False) -> dict:
    """Flatten a stored donation into the shape routers and the matcher consume."""
    cat = categories.get(doc.get("category_id")) or {}
    donor = users.get(doc.get("user_id"))
    out = {
        "id": str(doc["_id"]),
        "title": doc.get("title"),
        "description": doc.get("description"),
        "category_id": doc.get("category_id"),
        "category_name": cat.get("name"),
        "category_icon": cat.get("icon"),
        "user_id": doc.get("user_id"),
        "receiver_id": doc.get("receiver_id"),
        "status": doc.get("status"),
        "latitude": doc.get("latitude"),
        "longitude": doc.get("longitude"),
        "images": list(images),
        "donor_name": (donor or {}).get("name"),
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at"),
    }
    if with_user:
        out["user"] = donor_summary(donor)
    return out

def newest_first(docs: List[dict]) -> List[dict]:
    return sorted(docs, key=lambda d: (d.get("created_at") or utcnow(), str(d["_id"])), reverse=True)
