# wecare/deps.py
from functools import lru_cache

from wecare.core.config import settings
from wecare.services.llm import ChatCompletionClient

@lru_cache(maxsize=1)
def _repo_singleton():
    if settings.use_mongo:
        from wecare.core.db import get_client, get_db
        from wecare.repos.mongo import MongoRepo
        return MongoRepo(get_client(), get_db())
    from wecare.repos.inmemory import InMemoryRepo
    return InMemoryRepo()

def get_repo():
    return _repo_singleton()

@lru_cache(maxsize=1)
def _llm_singleton() -> ChatCompletionClient:
    return ChatCompletionClient(
        base_url=settings.llm_base_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        timeout=settings.llm_timeout_seconds,
    )

def get_llm() -> ChatCompletionClient:
    return _llm_singleton()

def get_image_store():
    from wecare.services.uploads import ImageStore
    return ImageStore()
