# tests/conftest.py
import pytest
from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager

from wecare.core.config import settings
from wecare.core.security import Principal
from wecare.core.states import Role
from wecare.deps import get_image_store, get_llm, get_repo
from wecare.main import app
from wecare.repos.inmemory import InMemoryRepo
from wecare.services.uploads import ImageStore
from wecare.services.users import seed

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture(scope="session")
def anyio_backend():
    # keep AnyIO on asyncio for the whole test session
    return "asyncio"


class FakeUpload:
    """Stands in for fastapi.UploadFile in service-level tests."""

    def __init__(self, filename="photo.png", content=PNG, content_type="image/png"):
        self.filename = filename
        self.content_type = content_type
        self._content = content

    async def read(self, size=-1):
        return self._content if size < 0 else self._content[:size]


class FakeLLM:
    """Records prompts and answers with a canned reply (or raises ``error``)."""

    def __init__(self, reply='{"matches": []}'):
        self.reply = reply
        self.error = None
        self.prompts = []

    async def complete_json(self, system, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply(prompt) if callable(self.reply) else self.reply


@pytest.fixture
async def repo():
    r = InMemoryRepo()
    await seed(r, settings.admin_email, settings.admin_password)
    return r


@pytest.fixture
def store(tmp_path):
    return ImageStore(upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
async def category_id(repo):
    cats = await repo.list_categories()
    return next(c["id"] for c in cats if c["name"] == "Clothing")


async def _principal(repo, name, role, **extra) -> Principal:
    user = await repo.create_user({
        "name": name, "email": f"{name.lower()}@wecare.org", "phone": "555",
        "password_hash": "x", "role": role.value, **extra,
    })
    return Principal(user_id=user["id"], role=role, email=user["email"])


@pytest.fixture
async def people(repo):
    """Donors A and C, receivers B and D, and the seeded admin, as principals."""
    admin = await repo.find_user_by_email(settings.admin_email)
    return {
        "donor_a": await _principal(repo, "Alice", Role.DONOR),
        "donor_c": await _principal(repo, "Carol", Role.DONOR),
        "receiver_b": await _principal(repo, "Bob", Role.RECEIVER, bio="Shelter for families",
                                       latitude=48.8566, longitude=2.3522),
        "receiver_d": await _principal(repo, "Dan", Role.RECEIVER),
        "admin": Principal(user_id=admin["id"], role=Role.ADMIN, email=admin["email"]),
    }


@pytest.fixture
async def test_client(repo, llm, store):
    app.dependency_overrides[get_repo] = lambda: repo
    app.dependency_overrides[get_llm] = lambda: llm
    app.dependency_overrides[get_image_store] = lambda: store
    async with LifespanManager(app):
        transport = ASGITransport(app=app, raise_app_exceptions=True)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    app.dependency_overrides.clear()
