import json

import pytest
from asgi_lifespan import LifespanManager
from httpx import AsyncClient

from conftest import PNG
from wecare.core.config import settings
from wecare.core.errors import MatchingError
from wecare.deps import get_repo
from wecare.main import app
from wecare.repos.inmemory import InMemoryRepo

pytestmark = pytest.mark.anyio


async def _register(ac: AsyncClient, name, role, **extra):
    r = await ac.post("/auth/register", json={
        "name": name, "email": f"{name.lower()}@wecare.org", "phone": "0600000000",
        "password": "secret-pw", "role": role, **extra,
    })
    assert r.status_code == 201, r.text
    data = r.json()
    return {"Authorization": f"Bearer {data['token']}"}, data["user"]


async def _admin(ac: AsyncClient):
    r = await ac.post("/auth/login", json={"email": settings.admin_email, "password": settings.admin_password})
    assert r.status_code == 200, r.text
    data = r.json()
    return {"Authorization": f"Bearer {data['token']}"}, data["user"]


async def _post_donation(ac, headers, category_id, title="Winter coats", lat="48.86", lng="2.35", n_images=1):
    files = [("images", (f"p{i}.png", PNG, "image/png")) for i in range(n_images)]
    return await ac.post("/donations", headers=headers, files=files or None, data={
        "title": title, "description": "Warm adult coats", "category_id": category_id,
        "latitude": lat, "longitude": lng,
    })


async def test_register_and_login(test_client: AsyncClient):
    _, user = await _register(test_client, "Alice", "donor")
    assert user["role"] == "donor"
    assert "password_hash" not in user

    r = await test_client.post("/auth/login", json={"email": "alice@wecare.org", "password": "secret-pw"})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == user["id"]

    r = await test_client.post("/auth/login", json={"email": "alice@wecare.org", "password": "wrong"})
    assert r.status_code == 400

    r = await test_client.post("/auth/register", json={
        "name": "Alice", "email": "alice@wecare.org", "password": "x", "role": "donor"})
    assert r.status_code == 400
    r = await test_client.post("/auth/register", json={
        "name": "Mallory", "email": "mallory@wecare.org", "password": "x", "role": "admin"})
    assert r.status_code == 400


async def test_profile_roundtrip(test_client: AsyncClient):
    headers, user = await _register(test_client, "Bob", "receiver")
    r = await test_client.put("/users/profile", headers=headers, data={
        "bio": "Shelter", "latitude": "48.85", "longitude": "2.35"},
        files={"avatar": ("me.png", PNG, "image/png")})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["bio"] == "Shelter"
    assert body["latitude"] == 48.85
    assert body["avatar"].startswith("/uploads/")

    r = await test_client.get("/users/profile", headers=headers)
    assert r.json()["bio"] == "Shelter"
    assert (await test_client.get("/users/profile")).status_code == 401


async def test_donation_lifecycle_over_http(test_client: AsyncClient):
    donor, _ = await _register(test_client, "Alice", "donor")
    receiver, receiver_user = await _register(test_client, "Bob", "receiver")
    categories = (await test_client.get("/categories")).json()
    assert len(categories) == 8
    cat = categories[0]["id"]

    r = await _post_donation(test_client, donor, cat, n_images=2)
    assert r.status_code == 201, r.text
    d1 = r.json()["id"]

    listed = (await test_client.get("/donations")).json()
    assert [d["id"] for d in listed] == [d1]
    detail = (await test_client.get(f"/donations/{d1}")).json()
    assert detail["status"] == "pending"
    assert len(detail["images"]) == 2
    assert detail["user"]["name"] == "Alice"
    assert [d["id"] for d in (await test_client.get(f"/donations/category/{cat}")).json()] == [d1]

    r = await test_client.put(f"/donations/{d1}/accept", headers=receiver)
    assert r.status_code == 200, r.text
    detail = (await test_client.get(f"/donations/{d1}")).json()
    assert detail["status"] == "accepted"
    assert detail["receiver_id"] == receiver_user["id"]
    assert (await test_client.get("/donations")).json() == []

    r = await test_client.put(f"/donations/{d1}/complete", headers=donor)
    assert r.status_code == 200

    r = await test_client.put(f"/donations/{d1}/accept", headers=receiver)
    assert r.status_code == 400
    assert r.json() == {"detail": "Donation is not available"}


async def test_http_failures_map_to_status_codes(test_client: AsyncClient):
    donor, donor_user = await _register(test_client, "Alice", "donor")
    other, _ = await _register(test_client, "Carol", "donor")
    receiver, _ = await _register(test_client, "Bob", "receiver")
    cat = (await test_client.get("/categories")).json()[0]["id"]

    assert (await _post_donation(test_client, receiver, cat)).status_code == 403
    assert (await _post_donation(test_client, donor, cat, n_images=0)).status_code == 400
    assert (await _post_donation(test_client, donor, cat, lat="north")).status_code == 400
    assert (await _post_donation(test_client, donor, cat, lat="123")).status_code == 400

    d1 = (await _post_donation(test_client, donor, cat)).json()["id"]
    assert (await test_client.put(f"/donations/{d1}/accept")).status_code == 401
    assert (await test_client.put(f"/donations/{d1}/accept", headers=donor)).status_code == 403
    assert (await test_client.put("/donations/missing/accept", headers=receiver)).status_code == 404
    assert (await test_client.put(f"/donations/{d1}/complete", headers=donor)).status_code == 400
    assert (await test_client.put(f"/donations/{d1}/complete", headers=other)).status_code == 403
    assert (await test_client.delete(f"/donations/{d1}", headers=other)).status_code == 403
    assert (await test_client.get("/donations/missing")).status_code == 404

    assert (await test_client.get(f"/donations/user/{donor_user['id']}", headers=other)).status_code == 403
    mine = await test_client.get(f"/donations/user/{donor_user['id']}", headers=donor)
    assert [d["id"] for d in mine.json()] == [d1]


async def test_admin_deletes_any_donation_and_sees_everything(test_client: AsyncClient, repo):
    donor, donor_user = await _register(test_client, "Alice", "donor")
    receiver, _ = await _register(test_client, "Bob", "receiver")
    admin, _ = await _admin(test_client)
    cat = (await test_client.get("/categories")).json()[0]["id"]
    d1 = (await _post_donation(test_client, donor, cat)).json()["id"]
    await test_client.put(f"/donations/{d1}/accept", headers=receiver)

    assert (await test_client.get("/admin/stats", headers=donor)).status_code == 403
    stats = (await test_client.get("/admin/stats", headers=admin)).json()
    assert stats == {"total_donations": 1, "total_users": 2, "pending_donations": 0, "completed_donations": 0}
    assert len((await test_client.get("/admin/donations", headers=admin)).json()) == 1
    assert len((await test_client.get("/admin/users", headers=admin)).json()) == 3

    r = await test_client.delete(f"/donations/{d1}", headers=admin)
    assert r.status_code == 200
    assert (await test_client.get(f"/donations/{d1}")).status_code == 404
    assert await repo.list_images(d1) == []

    d2 = (await _post_donation(test_client, donor, cat)).json()["id"]
    assert (await test_client.delete(f"/admin/users/{donor_user['id']}", headers=admin)).status_code == 200
    assert (await test_client.get(f"/donations/{d2}")).status_code == 404
    assert (await test_client.delete("/admin/users/nobody", headers=admin)).status_code == 404


async def test_ai_match_endpoint(test_client: AsyncClient, llm):
    donor, _ = await _register(test_client, "Alice", "donor")
    receiver, receiver_user = await _register(test_client, "Bob", "receiver", latitude=48.85, longitude=2.35)
    admin, _ = await _admin(test_client)
    cat = (await test_client.get("/categories")).json()[0]["id"]

    r = await test_client.get(f"/ai/match/{receiver_user['id']}", headers=receiver)
    assert r.status_code == 200
    assert r.json() == {"matches": []}
    assert llm.prompts == []

    d1 = (await _post_donation(test_client, donor, cat)).json()["id"]
    llm.reply = json.dumps({"matches": [
        {"id": "invented", "score": 99, "reason": "hallucinated"},
        {"id": d1, "score": 87, "reason": "Coats for the shelter"},
    ]})
    r = await test_client.get(f"/ai/match/{receiver_user['id']}", headers=receiver)
    assert r.status_code == 200, r.text
    matches = r.json()["matches"]
    assert [m["id"] for m in matches] == [d1]
    assert matches[0]["score"] == 87
    assert matches[0]["donation"]["title"] == "Winter coats"
    assert matches[0]["donation"]["distance_km"] < 5

    assert (await test_client.get(f"/ai/match/{receiver_user['id']}", headers=admin)).status_code == 200
    assert (await test_client.get(f"/ai/match/{receiver_user['id']}", headers=donor)).status_code == 403
    assert (await test_client.get("/ai/match/nobody", headers=admin)).status_code == 404

    llm.error = MatchingError()
    r = await test_client.get(f"/ai/match/{receiver_user['id']}", headers=receiver)
    assert r.status_code == 500
    assert r.json() == {"detail": "Matching is currently unavailable"}


async def test_health(test_client: AsyncClient):
    assert (await test_client.get("/health")).json() == {"ok": True}


async def test_startup_seeds_the_injected_store():
    fresh = InMemoryRepo()
    app.dependency_overrides[get_repo] = lambda: fresh
    try:
        async with LifespanManager(app):
            pass
    finally:
        app.dependency_overrides.clear()
    assert len(await fresh.list_categories()) == 8
    assert await fresh.find_user_by_email(settings.admin_email) is not None
