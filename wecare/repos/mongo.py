# wecare/repos/mongo.py
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from wecare.core.errors import StorageError, ValidationError
from wecare.repos.base import DEFAULT_CATEGORIES, hydrate, public_user, utcnow

logger = logging.getLogger(__name__)

def oid() -> str:
    return str(ObjectId())

@asynccontextmanager
async def _guard(op: str):
    """Translate driver failures into StorageError; the driver text stays in the log."""
    try:
        yield
    except DuplicateKeyError:
        raise
    except PyMongoError:
        logger.exception("mongo %s failed", op)
        raise StorageError()

class MongoRepo:
    """Motor-backed store.

    Multi-collection writes use a session transaction, so the server must run
    as a replica set (a single-node one is enough).
    """

    def __init__(self, client: AsyncIOMotorClient, db: AsyncIOMotorDatabase):
        self.client = client
        self.db = db

    @asynccontextmanager
    async def _transaction(self):
        async with await self.client.start_session() as session:
            async with session.start_transaction():
                yield session

    async def ping(self) -> bool:
        async with _guard("ping"):
            await self.db.command("ping")
        return True

    async def ensure_indexes(self):
        async def ensure_index(col, keys, name: str, **kwargs):
            existing = [ix["name"] async for ix in col.list_indexes()]
            if name in existing:
                return
            await col.create_index(keys, name=name, **kwargs)

        async with _guard("ensure_indexes"):
            await ensure_index(self.db.users, [("email", ASCENDING)], "email_1", unique=True)
            await ensure_index(self.db.donations, [("status", ASCENDING)], "status_1")
            await ensure_index(self.db.donations, [("user_id", ASCENDING)], "user_id_1")
            await ensure_index(self.db.donations, [("category_id", ASCENDING)], "category_id_1")
            await ensure_index(self.db.donation_images, [("donation_id", ASCENDING)], "donation_id_1")

    # Users
    async def create_user(self, doc: dict) -> dict:
        now = utcnow()
        stored = {**doc, "_id": oid(), "email": doc["email"].lower(), "created_at": now, "updated_at": now}
        try:
            async with _guard("create_user"):
                await self.db.users.insert_one(stored)
        except DuplicateKeyError:
            raise ValidationError("User already exists")
        return public_user(stored)

    async def find_user_by_email(self, email: str) -> Optional[dict]:
        async with _guard("find_user_by_email"):
            doc = await self.db.users.find_one({"email": (email or "").lower()})
        return public_user(doc, with_hash=True)

    async def get_user(self, user_id: str) -> Optional[dict]:
        async with _guard("get_user"):
            doc = await self.db.users.find_one({"_id": user_id})
        return public_user(doc)

    async def update_user(self, user_id: str, fields: dict) -> Optional[dict]:
        fields = dict(fields)
        if "email" in fields:
            fields["email"] = fields["email"].lower()
        fields["updated_at"] = utcnow()
        try:
            async with _guard("update_user"):
                doc = await self.db.users.find_one_and_update(
                    {"_id": user_id}, {"$set": fields}, return_document=ReturnDocument.AFTER,
                )
        except DuplicateKeyError:
            raise ValidationError("Email already in use")
        return public_user(doc)

    async def list_users(self) -> List[dict]:
        async with _guard("list_users"):
            docs = await self.db.users.find({}).sort("created_at", DESCENDING).to_list(length=None)
        return [public_user(d) for d in docs]

    async def count_users(self, exclude_role: Optional[str] = None) -> int:
        q = {"role": {"$ne": exclude_role}} if exclude_role else {}
        async with _guard("count_users"):
            return await self.db.users.count_documents(q)

    async def delete_user(self, user_id: str) -> bool:
        async with _guard("delete_user"):
            async with self._transaction() as s:
                user = await self.db.users.find_one({"_id": user_id}, session=s)
                if not user:
                    return False
                owned = [d["_id"] async for d in self.db.donations.find({"user_id": user_id}, {"_id": 1}, session=s)]
                await self.db.donation_images.delete_many({"donation_id": {"$in": owned}}, session=s)
                await self.db.donations.delete_many({"user_id": user_id}, session=s)
                await self.db.users.delete_one({"_id": user_id}, session=s)
        return True

    async def ensure_admin(self, doc: dict) -> None:
        async with _guard("ensure_admin"):
            if await self.db.users.count_documents({"role": "admin"}, limit=1):
                return
        await self.create_user(doc)

    # Categories
    async def seed_categories(self, defaults=DEFAULT_CATEGORIES) -> None:
        async with _guard("seed_categories"):
            if await self.db.categories.count_documents({}, limit=1):
                return
            await self.db.categories.insert_many([
                {"_id": oid(), "name": name, "icon": icon, "created_at": utcnow()}
                for name, icon in defaults
            ])

    async def list_categories(self) -> List[dict]:
        async with _guard("list_categories"):
            docs = await self.db.categories.find({}).sort("name", ASCENDING).to_list(length=None)
        return [{"id": c["_id"], "name": c["name"], "icon": c.get("icon")} for c in docs]

    async def get_category(self, category_id: str) -> Optional[dict]:
        async with _guard("get_category"):
            c = await self.db.categories.find_one({"_id": category_id})
        return {"id": c["_id"], "name": c["name"], "icon": c.get("icon")} if c else None

    # Donations
    async def _hydrate_many(self, docs: List[dict], with_user: bool = False) -> List[dict]:
        if not docs:
            return []
        ids = [d["_id"] for d in docs]
        cats = {c["_id"]: c async for c in self.db.categories.find({})}
        users: Dict[str, dict] = {
            u["_id"]: u async for u in self.db.users.find({"_id": {"$in": list({d["user_id"] for d in docs})}})
        }
        images: Dict[str, List[str]] = {i: [] for i in ids}
        cursor = self.db.donation_images.find({"donation_id": {"$in": ids}}).sort([("created_at", ASCENDING), ("_id", ASCENDING)])
        async for im in cursor:
            images[im["donation_id"]].append(im["image_url"])
        return [hydrate(d, cats, users, images[d["_id"]], with_user) for d in docs]

    async def insert_donation(self, doc: dict, image_urls: List[str]) -> str:
        did = oid()
        now = utcnow()
        async with _guard("insert_donation"):
            async with self._transaction() as s:
                await self.db.donations.insert_one(
                    {**doc, "_id": did, "created_at": now, "updated_at": now}, session=s,
                )
                if image_urls:
                    await self.db.donation_images.insert_many([
                        {"_id": oid(), "donation_id": did, "image_url": url, "created_at": now}
                        for url in image_urls
                    ], session=s)
        return did

    async def get_donation(self, donation_id: str) -> Optional[dict]:
        async with _guard("get_donation"):
            doc = await self.db.donations.find_one({"_id": donation_id})
            if not doc:
                return None
            return (await self._hydrate_many([doc], with_user=True))[0]

    async def list_donations(self, status: Optional[str] = None,
                             category_id: Optional[str] = None,
                             user_id: Optional[str] = None) -> List[dict]:
        q = {}
        if status is not None:
            q["status"] = status
        if category_id is not None:
            q["category_id"] = category_id
        if user_id is not None:
            q["user_id"] = user_id
        async with _guard("list_donations"):
            docs = await self.db.donations.find(q).sort("created_at", DESCENDING).to_list(length=None)
            return await self._hydrate_many(docs)

    async def list_images(self, donation_id: str) -> List[str]:
        async with _guard("list_images"):
            return [im["image_url"] async for im in self.db.donation_images.find({"donation_id": donation_id})]

    async def count_donations(self, status: Optional[str] = None) -> int:
        async with _guard("count_donations"):
            return await self.db.donations.count_documents({"status": status} if status else {})

    async def transition(self, donation_id: str, src: str, dst: str, extra: Optional[dict] = None) -> bool:
        """Compare-and-swap on status; only one concurrent caller can match ``src``."""
        async with _guard("transition"):
            res = await self.db.donations.update_one(
                {"_id": donation_id, "status": src},
                {"$set": {**(extra or {}), "status": dst, "updated_at": utcnow()}},
            )
        return res.modified_count == 1

    async def delete_donation(self, donation_id: str) -> bool:
        async with _guard("delete_donation"):
            async with self._transaction() as s:
                await self.db.donation_images.delete_many({"donation_id": donation_id}, session=s)
                res = await self.db.donations.delete_one({"_id": donation_id}, session=s)
                if res.deleted_count == 0:
                    await s.abort_transaction()
                    return False
        return True
