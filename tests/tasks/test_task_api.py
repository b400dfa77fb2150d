"""Task routes: status codes and error codes over HTTP."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

CODE = "Kode-1234"


async def _register(client: AsyncClient, headers: dict, **body) -> dict:
    response = await client.post("/api/v1/users/register", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def budi(token_for):
    return token_for("user_budi")


@pytest.fixture
def sari(token_for):
    return token_for("user_sari")


async def _setup_pair(client: AsyncClient, budi: dict, sari: dict, payment: bool = True) -> None:
    await _register(client, budi, name="Budi", username="budi", role="client", age=30)
    await _register(
        client, sari, name="Sari", username="sari", role="freelancer", age=15, parental_code=CODE,
    )
    if payment:
        response = await client.patch(
            "/api/v1/users/me/payment",
            json={"payment_method": "DANA", "payment_number": "081234567890"},
            headers=sari,
        )
        assert response.status_code == 200


async def _post_task(client: AsyncClient, headers: dict, **overrides) -> dict:
    body = {"title": "Design a poster", "description": "A4 poster", "budget": 50000, **overrides}
    response = await client.post("/api/v1/tasks", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestTaskRoutes:

    @pytest.mark.asyncio
    async def test_create_and_list(self, client, budi, sari):
        await _setup_pair(client, budi, sari)
        task = await _post_task(client, budi, deadline="2026-12-01")
        assert task["status"] == "open"
        assert task["freelancer_id"] is None

        feed = (await client.get("/api/v1/tasks/open", headers=sari)).json()
        assert feed["total"] == 1
        assert feed["tasks"][0]["id"] == task["id"]

        mine = (await client.get("/api/v1/tasks/mine", headers=budi)).json()
        assert [t["id"] for t in mine["tasks"]] == [task["id"]]

        detail = await client.get(f"/api/v1/tasks/{task['id']}", headers=sari)
        assert detail.status_code == 200

    @pytest.mark.asyncio
    async def test_freelancer_cannot_create(self, client, budi, sari):
        await _setup_pair(client, budi, sari)
        response = await client.post(
            "/api/v1/tasks",
            json={"title": "x", "description": "y", "budget": 10},
            headers=sari,
        )
        assert response.status_code == 403
        assert response.json()["code"] == "wrong_role"

    @pytest.mark.asyncio
    async def test_non_positive_budget_rejected(self, client, budi, sari):
        await _setup_pair(client, budi, sari)
        response = await client.post(
            "/api/v1/tasks",
            json={"title": "x", "description": "y", "budget": 0},
            headers=budi,
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_take_requires_payment_setup(self, client, budi, sari):
        await _setup_pair(client, budi, sari, payment=False)
        task = await _post_task(client, budi)
        response = await client.post(
            f"/api/v1/tasks/{task['id']}/take", json={"parental_code": CODE}, headers=sari,
        )
        assert response.status_code == 412
        assert response.json()["code"] == "payment_setup_required"

    @pytest.mark.asyncio
    async def test_take_wrong_parental_code(self, client, budi, sari):
        await _setup_pair(client, budi, sari)
        task = await _post_task(client, budi)
        response = await client.post(
            f"/api/v1/tasks/{task['id']}/take", json={"parental_code": "0000"}, headers=sari,
        )
        assert response.status_code == 403
        assert response.json()["code"] == "wrong_parental_code"

    @pytest.mark.asyncio
    async def test_quota_and_weekly_count(self, client, budi, sari):
        await _setup_pair(client, budi, sari)
        response = await client.patch("/api/v1/users/me/quota", json={"task_quota": 1}, headers=sari)
        assert response.json()["task_quota"] == 1

        first = await _post_task(client, budi, title="First")
        second = await _post_task(client, budi, title="Second")
        response = await client.post(
            f"/api/v1/tasks/{first['id']}/take", json={"parental_code": CODE}, headers=sari,
        )
        assert response.status_code == 200

        count = (await client.get("/api/v1/tasks/weekly-count", headers=sari)).json()
        assert count["count"] == 1
        assert count["quota"] == 1
        assert count["remaining"] == 0
        assert count["window_days"] == 7

        response = await client.post(
            f"/api/v1/tasks/{second['id']}/take", json={"parental_code": CODE}, headers=sari,
        )
        assert response.status_code == 429
        assert response.json()["code"] == "quota_exhausted"

    @pytest.mark.asyncio
    async def test_weekly_count_is_freelancer_only(self, client, budi, sari):
        await _setup_pair(client, budi, sari)
        response = await client.get("/api/v1/tasks/weekly-count", headers=budi)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_task(self, client, budi, sari):
        await _setup_pair(client, budi, sari)
        response = await client.post(
            "/api/v1/tasks/nope/take", json={"parental_code": CODE}, headers=sari,
        )
        assert response.status_code == 404
        assert response.json()["code"] == "task_not_found"

    @pytest.mark.asyncio
    async def test_delete(self, client, budi, sari):
        await _setup_pair(client, budi, sari)
        task = await _post_task(client, budi)

        response = await client.delete(f"/api/v1/tasks/{task['id']}", headers=sari)
        assert response.status_code == 403

        response = await client.delete(f"/api/v1/tasks/{task['id']}", headers=budi)
        assert response.status_code == 204

        response = await client.get(f"/api/v1/tasks/{task['id']}", headers=budi)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_cannot_delete_taken_task(self, client, budi, sari):
        await _setup_pair(client, budi, sari)
        task = await _post_task(client, budi)
        await client.post(f"/api/v1/tasks/{task['id']}/take", json={"parental_code": CODE}, headers=sari)

        response = await client.delete(f"/api/v1/tasks/{task['id']}", headers=budi)
        assert response.status_code == 409
        assert response.json()["code"] == "transition_conflict"


class TestRegistrationRoutes:

    @pytest.mark.asyncio
    async def test_register_twice(self, client, budi):
        await _register(client, budi, name="Budi", username="budi", role="client", age=30)
        response = await client.post(
            "/api/v1/users/register",
            json={"name": "Budi", "username": "budi", "role": "client", "age": 30},
            headers=budi,
        )
        assert response.status_code == 409
        assert response.json()["code"] == "already_registered"

    @pytest.mark.asyncio
    async def test_profile_hides_parental_code(self, client, sari):
        await _register(
            client, sari, name="Sari", username="sari", role="FREELANCER", age=15, parental_code=CODE,
        )
        profile = (await client.get("/api/v1/users/me", headers=sari)).json()
        assert profile["role"] == "freelancer"
        assert profile["has_payment_details"] is False
        assert "parental_code_hash" not in profile
        assert CODE not in str(profile)

    @pytest.mark.asyncio
    async def test_underage_client(self, client, budi):
        response = await client.post(
            "/api/v1/users/register",
            json={"name": "Budi", "username": "budi", "role": "client", "age": 16},
            headers=budi,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"


class TestSafetyRoute:

    @pytest.mark.asyncio
    async def test_skipped_without_api_key(self, client, budi, sari):
        await _setup_pair(client, budi, sari)
        response = await client.post(
            "/api/v1/safety/check",
            json={"title": "Design a poster", "description": "A4 poster"},
            headers=budi,
        )
        assert response.status_code == 200
        assert response.json() == {"safe": True, "reason": "AI check skipped (no API key)"}
