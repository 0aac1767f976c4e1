# wecare/core/db.py
from functools import lru_cache

from motor.motor_asyncio import AsyncIOMotorClient

from wecare.core.config import settings

@lru_cache
def get_client() -> AsyncIOMotorClient:
    return AsyncIOMotorClient(
        settings.mongo_uri,
        uuidRepresentation="standard",
        serverSelectionTimeoutMS=settings.mongo_timeout_ms,
    )

def get_db():
    return get_client()[settings.mongo_db]
