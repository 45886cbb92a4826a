import pytest
from uuid import uuid4
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from gym_studio_backend.database import models as db_models
from tests.database import factories

BASE_URL = "/api/protected/client"


@pytest.mark.anyio
class TestClientsAPI:

    async def test_create_and_fetch_client(self, api_client: AsyncClient, admin_headers: dict):
        print("\n--- Testing POST /api/protected/client ---")
        response = await api_client.post(
            BASE_URL,
            json={"name": "Morgan Runner", "username": "Morgan", "password": "longenough", "is_active": True},
            headers=admin_headers
        )
        data = response.json()
        print(f"Response: {data}")

        assert response.status_code == 201
        assert data["client"]["username"] == "morgan"
        assert "password" not in data["client"]

        fetched = await api_client.get(f"{BASE_URL}/{data['client']['id']}", headers=admin_headers)
        assert fetched.status_code == 200
        assert fetched.json()["client"]["name"] == "Morgan Runner"

    async def test_duplicate_username(
        self,
        api_client: AsyncClient,
        admin_headers: dict,
        test_client_orm: db_models.Clients
    ):
        response = await api_client.post(
            BASE_URL,
            json={"name": "Another Alex", "username": "alex", "password": "longenough"},
            headers=admin_headers
        )
        assert response.status_code == 409
        assert response.json() == {"success": False, "error": 'Username "alex" is already taken'}

    async def test_short_password_rejected(self, api_client: AsyncClient, admin_headers: dict):
        response = await api_client.post(
            BASE_URL,
            json={"name": "Shorty", "username": "shorty", "password": "abc"},
            headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    async def test_list_clients_paging(
        self,
        api_client: AsyncClient,
        db_session: AsyncSession,
        admin_headers: dict
    ):
        factories.ClientFactory(name="Ann")
        factories.ClientFactory(name="Ben")
        factories.ClientFactory(name="Cat", is_active=False)
        await db_session.flush()

        response = await api_client.get(BASE_URL, params={"limit": 2}, headers=admin_headers)
        data = response.json()
        assert [c["name"] for c in data["clients"]] == ["Ann", "Ben"]
        assert data["total_count"] == 3
        assert data["has_more"] is True

        active = await api_client.get(BASE_URL, params={"include_inactive": False}, headers=admin_headers)
        assert active.json()["total_count"] == 2

    async def test_detailed_client(
        self,
        api_client: AsyncClient,
        db_session: AsyncSession,
        admin_headers: dict,
        test_admin_orm: db_models.Admins,
        test_client_orm: db_models.Clients
    ):
        factories.PaymentFactory(client=test_client_orm, created_by=test_admin_orm)
        await db_session.flush()

        response = await api_client.get(
            f"{BASE_URL}/{test_client_orm.id}", params={"detailed": True}, headers=admin_headers
        )
        assert response.status_code == 200
        assert len(response.json()["client"]["recent_payments"]) == 1

    async def test_update_client(
        self,
        api_client: AsyncClient,
        admin_headers: dict,
        test_client_orm: db_models.Clients
    ):
        response = await api_client.put(
            f"{BASE_URL}/{test_client_orm.id}",
            json={"phone": "+1 555 0142", "password": ""},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["client"]["phone"] == "+1 555 0142"

    async def test_unknown_and_malformed_ids(self, api_client: AsyncClient, admin_headers: dict):
        missing = await api_client.get(f"{BASE_URL}/{uuid4()}", headers=admin_headers)
        assert missing.status_code == 404

        malformed = await api_client.get(f"{BASE_URL}/not-a-uuid", headers=admin_headers)
        assert malformed.status_code == 400
        assert malformed.json()["error"] == "Validation failed"

    async def test_group_routes_are_not_client_ids(self, api_client: AsyncClient, admin_headers: dict):
        response = await api_client.get(f"{BASE_URL}/group/summary", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["total_groups"] == 0
