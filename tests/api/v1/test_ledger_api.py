from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from bson import ObjectId
from fastapi import status
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from bizledger.db.mongo import get_db
from bizledger.main import app
from bizledger.models.base import _utcnow


@pytest.fixture
def api():
    """TestClient bound to an in-memory database (no startup connection)."""
    db = AsyncMongoMockClient()["bizledger_api_test"]
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return {"X-User-Id": str(ObjectId())}


def create_account(api, headers, initial_balance_cents=50000):
    response = api.post(
        "/api/v1/accounts",
        headers=headers,
        json={"name": "Operating", "type": "bank", "initial_balance_cents": initial_balance_cents},
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


def test_missing_tenant_header_is_rejected(api):
    response = api.get("/api/v1/accounts")
    assert response.status_code == 422


def test_malformed_tenant_header_is_unauthorized(api):
    response = api.get("/api/v1/accounts", headers={"X-User-Id": "not-an-id"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_payment_round_trip_moves_balance(api, headers):
    account = create_account(api, headers)

    created = api.post(
        "/api/v1/payments",
        headers=headers,
        json={
            "type": "income",
            "method": "cash",
            "amount_cents": 20000,
            "description": "Walk-in sale",
            "account_id": account["id"],
        },
    )
    assert created.status_code == status.HTTP_201_CREATED
    payment = created.json()
    assert payment["account_id"] == account["id"]
    assert api.get(f"/api/v1/accounts/{account['id']}", headers=headers).json()["balance_cents"] == 70000

    deleted = api.delete(f"/api/v1/payments/{payment['id']}", headers=headers)
    assert deleted.status_code == status.HTTP_204_NO_CONTENT
    assert api.get(f"/api/v1/accounts/{account['id']}", headers=headers).json()["balance_cents"] == 50000


def test_non_positive_amount_is_a_request_error(api, headers):
    account = create_account(api, headers)
    response = api.post(
        "/api/v1/payments",
        headers=headers,
        json={
            "type": "expense",
            "method": "cash",
            "amount_cents": 0,
            "description": "Nothing",
            "account_id": account["id"],
        },
    )
    assert response.status_code == 422


def test_unknown_ids_map_to_404(api, headers):
    assert api.get(f"/api/v1/debts/{ObjectId()}", headers=headers).status_code == status.HTTP_404_NOT_FOUND
    response = api.get("/api/v1/accounts/garbage", headers=headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert "Account not found" in response.json()["detail"]


def test_accounts_are_tenant_scoped(api, headers):
    account = create_account(api, headers)
    other = {"X-User-Id": str(ObjectId())}

    assert api.get(f"/api/v1/accounts/{account['id']}", headers=other).status_code == status.HTTP_404_NOT_FOUND
    assert api.get("/api/v1/accounts", headers=other).json() == []


def test_debt_payment_flow(api, headers):
    account = create_account(api, headers, initial_balance_cents=0)
    client = api.post("/api/v1/clients", headers=headers, json={"name": "Acme Corp", "type": "company"}).json()
    debt = api.post(
        "/api/v1/debts",
        headers=headers,
        json={"client_id": client["id"], "description": "Project", "total_amount_cents": 100000},
    ).json()
    assert debt["debt_number"] == "DEBT-000001"
    assert debt["interest_amount_cents"] == 0

    payment = api.post(
        "/api/v1/debt-payments",
        headers=headers,
        json={
            "debt_id": debt["id"],
            "account_id": account["id"],
            "amount_cents": 30000,
            "method": "bank_transfer",
        },
    ).json()
    completed = api.post(f"/api/v1/debt-payments/{payment['id']}/complete", headers=headers)

    assert completed.status_code == status.HTTP_200_OK
    assert completed.json()["status"] == "completed"
    assert api.get(f"/api/v1/debts/{debt['id']}", headers=headers).json()["status"] == "partial"
    refreshed = api.get(f"/api/v1/clients/{client['id']}", headers=headers).json()
    assert (refreshed["total_debt_cents"], refreshed["total_paid_cents"]) == (70000, 30000)
    assert api.get(f"/api/v1/accounts/{account['id']}", headers=headers).json()["balance_cents"] == 30000

    overpay = api.post(
        "/api/v1/debt-payments",
        headers=headers,
        json={
            "debt_id": debt["id"],
            "account_id": account["id"],
            "amount_cents": 70001,
            "method": "cash",
        },
    )
    assert overpay.status_code == status.HTTP_400_BAD_REQUEST


def test_transfer_with_insufficient_balance_is_400(api, headers):
    source = create_account(api, headers, initial_balance_cents=100)
    target = create_account(api, headers, initial_balance_cents=0)

    response = api.post(
        "/api/v1/accounts/transfer",
        headers=headers,
        json={"from_account_id": source["id"], "to_account_id": target["id"], "amount_cents": 101},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "Insufficient balance" in response.json()["detail"]


def test_closed_period_locks_invoice(api, headers):
    invoice = api.post(
        "/api/v1/invoices",
        headers=headers,
        json={
            "type": "sent",
            "client": "Acme Corp",
            "description": "Retainer",
            "total_cents": 120000,
            "due_date": (_utcnow() + timedelta(days=15)).isoformat(),
        },
    ).json()
    assert invoice["invoice_number"].startswith("INV-")
    now = _utcnow()

    closed = api.post("/api/v1/periods/close", headers=headers, json={"year": now.year, "month": now.month})
    assert closed.status_code == status.HTTP_200_OK
    assert closed.json()["status"] == "closed"
    assert closed.json()["total_invoices"] == 1

    locked = api.put(f"/api/v1/invoices/{invoice['id']}", headers=headers, json={"notes": "edit"})
    assert locked.status_code == status.HTTP_403_FORBIDDEN

    summary = api.get(f"/api/v1/periods/{now.year}/{now.month}/summary", headers=headers).json()
    assert summary["period"]["status"] == "closed"
    assert summary["invoices_by_status"]["draft"]["total_cents"] == 120000


def test_explicit_null_on_required_field_is_ignored(api, headers):
    account = create_account(api, headers)
    payment = api.post(
        "/api/v1/payments",
        headers=headers,
        json={
            "type": "expense",
            "method": "cash",
            "amount_cents": 5000,
            "description": "Supplies",
            "account_id": account["id"],
        },
    ).json()

    response = api.put(
        f"/api/v1/payments/{payment['id']}",
        headers=headers,
        json={"amount_cents": None, "description": None, "type": None},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["amount_cents"] == 5000
    assert api.get(f"/api/v1/accounts/{account['id']}", headers=headers).json()["balance_cents"] == 45000


def test_lifespan_opens_and_closes_mongo():
    with patch("bizledger.main.connect_to_mongo", AsyncMock()) as connect, patch(
        "bizledger.main.disconnect_from_mongo", AsyncMock()
    ) as disconnect:
        with TestClient(app) as client:
            assert client.get("/health").json()["status"] == "ok"
            connect.assert_awaited_once()
            disconnect.assert_not_awaited()
        disconnect.assert_awaited_once()
