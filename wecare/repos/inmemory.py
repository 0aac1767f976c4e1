# wecare/repos/inmemory.py
import asyncio
import copy
import uuid
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from wecare.core.errors import ValidationError
from wecare.repos.base import (
    DEFAULT_CATEGORIES, hydrate, newest_first, public_user, utcnow,
)

def _id() -> str:
    return uuid.uuid4().hex

class InMemoryRepo:
    """Process-local store with the same async surface as ``MongoRepo``.

    Multi-step writes run under one lock against a snapshot that is restored
    if any step raises, so a failed create/delete leaves no partial rows.
    """

    def __init__(self):
        self.users: Dict[str, dict] = {}
        self.categories: Dict[str, dict] = {}
        self.donations: Dict[str, dict] = {}
        self.images: Dict[str, dict] = {}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _transaction(self):
        async with self._lock:
            snapshot = copy.deepcopy((self.users, self.categories, self.donations, self.images))
            try:
                yield
            except BaseException:
                self.users, self.categories, self.donations, self.images = snapshot
                raise

    async def ping(self) -> bool:
        return True

    async def ensure_indexes(self):
        return None

    # Users
    def _email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        email = (email or "").lower()
        return any(u["email"].lower() == email and k != exclude_id for k, u in self.users.items())

    async def create_user(self, doc: dict) -> dict:
        async with self._transaction():
            if self._email_taken(doc["email"]):
                raise ValidationError("User already exists")
            uid = _id()
            now = utcnow()
            stored = {**doc, "_id": uid, "created_at": now, "updated_at": now}
            self.users[uid] = stored
        return public_user(stored)

    async def find_user_by_email(self, email: str) -> Optional[dict]:
        email = (email or "").lower()
        for u in self.users.values():
            if u["email"].lower() == email:
                return public_user(u, with_hash=True)
        return None

    async def get_user(self, user_id: str) -> Optional[dict]:
        return public_user(self.users.get(user_id))

    async def update_user(self, user_id: str, fields: dict) -> Optional[dict]:
        async with self._transaction():
            doc = self.users.get(user_id)
            if not doc:
                return None
            if "email" in fields and self._email_taken(fields["email"], exclude_id=user_id):
                raise ValidationError("Email already in use")
            doc.update(fields)
            doc["updated_at"] = utcnow()
        return public_user(doc)

    async def list_users(self) -> List[dict]:
        return [public_user(u) for u in newest_first(list(self.users.values()))]

    async def count_users(self, exclude_role: Optional[str] = None) -> int:
        return sum(1 for u in self.users.values() if u.get("role") != exclude_role)

    async def delete_user(self, user_id: str) -> bool:
        async with self._transaction():
            if user_id not in self.users:
                return False
            owned = {k for k, d in self.donations.items() if d["user_id"] == user_id}
            for k in [k for k, im in self.images.items() if im["donation_id"] in owned]:
                del self.images[k]
            for k in owned:
                del self.donations[k]
            del self.users[user_id]
        return True

    async def ensure_admin(self, doc: dict) -> None:
        if any(u.get("role") == "admin" for u in self.users.values()):
            return
        await self.create_user(doc)

    # Categories
    async def seed_categories(self, defaults=DEFAULT_CATEGORIES) -> None:
        if self.categories:
            return
        for name, icon in defaults:
            cid = _id()
            self.categories[cid] = {"_id": cid, "name": name, "icon": icon, "created_at": utcnow()}

    async def list_categories(self) -> List[dict]:
        cats = sorted(self.categories.values(), key=lambda c: c["name"])
        return [{"id": c["_id"], "name": c["name"], "icon": c.get("icon")} for c in cats]

    async def get_category(self, category_id: str) -> Optional[dict]:
        c = self.categories.get(category_id)
        return {"id": c["_id"], "name": c["name"], "icon": c.get("icon")} if c else None

    # Donations
    def _image_urls(self, donation_id: str) -> List[str]:
        return [im["image_url"] for im in self.images.values() if im["donation_id"] == donation_id]

    def _hydrate(self, doc: dict, with_user: bool = False) -> dict:
        return hydrate(doc, self.categories, self.users, self._image_urls(doc["_id"]), with_user)

    def _write_image(self, donation_id: str, url: str) -> None:
        iid = _id()
        self.images[iid] = {"_id": iid, "donation_id": donation_id, "image_url": url,
                            "created_at": utcnow()}

    async def insert_donation(self, doc: dict, image_urls: List[str]) -> str:
        async with self._transaction():
            did = _id()
            now = utcnow()
            self.donations[did] = {**doc, "_id": did, "created_at": now, "updated_at": now}
            for url in image_urls:
                self._write_image(did, url)
        return did

    async def get_donation(self, donation_id: str) -> Optional[dict]:
        doc = self.donations.get(donation_id)
        return self._hydrate(doc, with_user=True) if doc else None

    async def list_donations(self, status: Optional[str] = None,
                             category_id: Optional[str] = None,
                             user_id: Optional[str] = None) -> List[dict]:
        docs = [
            d for d in self.donations.values()
            if (status is None or d["status"] == status)
            and (category_id is None or d.get("category_id") == category_id)
            and (user_id is None or d["user_id"] == user_id)
        ]
        return [self._hydrate(d) for d in newest_first(docs)]

    async def list_images(self, donation_id: str) -> List[str]:
        return self._image_urls(donation_id)

    async def count_donations(self, status: Optional[str] = None) -> int:
        return sum(1 for d in self.donations.values() if status is None or d["status"] == status)

    async def transition(self, donation_id: str, src: str, dst: str, extra: Optional[dict] = None) -> bool:
        """Conditional update: applies only while the stored status equals ``src``."""
        async with self._transaction():
            doc = self.donations.get(donation_id)
            if not doc or doc["status"] != src:
                return False
            doc.update(extra or {})
            doc["status"] = dst
            doc["updated_at"] = utcnow()
        return True

    async def delete_donation(self, donation_id: str) -> bool:
        async with self._transaction():
            if donation_id not in self.donations:
                return False
            for k in [k for k, im in self.images.items() if im["donation_id"] == donation_id]:
                del self.images[k]
            del self.donations[donation_id]
        return True
