import pytest
from datetime import datetime
from decimal import Decimal
from uuid import uuid4
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from gym_studio_backend.database import models as db_models
from tests.database import factories

BASE_URL = "/api/protected/payments"


@pytest.mark.anyio
class TestPaymentsAPI:

    async def test_last_payment_per_client(
        self,
        api_client: AsyncClient,
        db_session: AsyncSession,
        admin_headers: dict,
        test_admin_orm: db_models.Admins,
        test_client_orm: db_models.Clients
    ):
        factories.PaymentFactory(
            client=test_client_orm, created_by=test_admin_orm,
            payment_date=datetime(2024, 1, 1), valid_until=datetime(2024, 2, 1)
        )
        factories.PaymentFactory(
            client=test_client_orm, created_by=test_admin_orm, status="pending",
            payment_date=datetime(2024, 3, 1), valid_until=datetime(2024, 4, 1)
        )
        await db_session.flush()

        response = await api_client.get(BASE_URL, headers=admin_headers)
        data = response.json()
        print(f"Response: {data}")

        assert response.status_code == 200
        assert len(data["payments"]) == 1
        assert data["payments"][0]["status"] == "pending"
        assert data["payments"][0]["payment_date"] == "2024-03-01T00:00:00"

        paid_only = await api_client.get(BASE_URL, params={"status": "paid"}, headers=admin_headers)
        assert paid_only.json()["payments"][0]["payment_date"] == "2024-01-01T00:00:00"

    async def test_invalid_status_filter(self, api_client: AsyncClient, admin_headers: dict):
        response = await api_client.get(BASE_URL, params={"status": "refunded"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    async def test_create_payment(
        self,
        api_client: AsyncClient,
        admin_headers: dict,
        test_client_orm: db_models.Clients
    ):
        payload = {
            "client_id": str(test_client_orm.id),
            "amount": 45.5,
            "payment_date": "2024-05-01T10:00:00",
            "valid_until": "2024-06-01T10:00:00",
            "status": "paid",
        }
        response = await api_client.post(BASE_URL, json=payload, headers=admin_headers)
        data = response.json()

        assert response.status_code == 201
        assert data["message"] == "Payment created successfully"
        assert Decimal(data["payment"]["amount"]) == Decimal("45.5")
        assert data["client_reactivated"] is False

    async def test_create_payment_itemized_errors(self, api_client: AsyncClient, admin_headers: dict):
        response = await api_client.post(BASE_URL, json={"status": "unknown"}, headers=admin_headers)
        data = response.json()

        assert response.status_code == 400
        assert data["error"] == "Validation failed"
        assert "Client ID is required and must be a string" in data["details"]
        assert "Status must be one of: paid, pending, failed" in data["details"]

    async def test_create_payment_unknown_client(self, api_client: AsyncClient, admin_headers: dict):
        payload = {
            "client_id": str(uuid4()),
            "amount": 10,
            "payment_date": "2024-05-01T10:00:00",
            "valid_until": "2024-06-01T10:00:00",
            "status": "paid",
        }
        response = await api_client.post(BASE_URL, json=payload, headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "Client not found"

    async def test_update_mark_paid_delete(
        self,
        api_client: AsyncClient,
        db_session: AsyncSession,
        admin_headers: dict,
        test_admin_orm: db_models.Admins
    ):
        payment = factories.PaymentFactory(created_by=test_admin_orm, status="pending")
        await db_session.flush()

        updated = await api_client.put(f"{BASE_URL}/{payment.id}", json={"notes": "cash"}, headers=admin_headers)
        assert updated.status_code == 200
        assert updated.json()["payment"]["notes"] == "cash"

        marked = await api_client.post(f"{BASE_URL}/{payment.id}/mark-paid", headers=admin_headers)
        assert marked.json()["payment"]["status"] == "paid"

        deleted = await api_client.delete(f"{BASE_URL}/{payment.id}", headers=admin_headers)
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Payment deleted successfully"

        missing = await api_client.delete(f"{BASE_URL}/{payment.id}", headers=admin_headers)
        assert missing.status_code == 404

    async def test_stats_overdue_and_client_history(
        self,
        api_client: AsyncClient,
        db_session: AsyncSession,
        admin_headers: dict,
        test_admin_orm: db_models.Admins,
        test_client_orm: db_models.Clients
    ):
        factories.PaymentFactory(client=test_client_orm, created_by=test_admin_orm)
        factories.ClientFactory(name="Never Paid")
        await db_session.flush()

        stats = (await api_client.get(f"{BASE_URL}/stats", headers=admin_headers)).json()
        assert stats["total_payments"] == 1
        assert stats["clients_without_payments"] == 1

        overdue = (await api_client.get(f"{BASE_URL}/overdue", headers=admin_headers)).json()
        assert [item["client"]["name"] for item in overdue["clients"]] == ["Never Paid"]

        history = (await api_client.get(f"{BASE_URL}/client/{test_client_orm.id}", headers=admin_headers)).json()
        assert history["count"] == 1
        assert history["client"]["username"] == "alex"
