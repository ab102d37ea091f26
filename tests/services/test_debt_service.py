from datetime import timedelta

import pytest

from bizledger.core.exceptions import LedgerValidationError, NotFoundError
from bizledger.models.base import _utcnow
from bizledger.models.debt_payment import DebtPayment
from bizledger.repositories.client_repo import ClientRepository
from bizledger.repositories.debt_payment_repo import DebtPaymentRepository
from bizledger.repositories.debt_repo import DebtRepository
from bizledger.schemas.debt import DebtCreate, DebtUpdate
from bizledger.services.client_service import ClientService
from bizledger.services.debt_service import DebtService


def new_debt(client, total_cents=100000, **extra):
    return DebtCreate(client_id=str(client.id), description="Consulting", total_amount_cents=total_cents, **extra)


async def client_totals(db, client):
    stored = await ClientRepository(db).get(client.id)
    return stored.total_debt_cents, stored.total_paid_cents


@pytest.mark.asyncio
async def test_create_debt_adds_to_client_debt(test_db, owner_id, client):
    debt = await DebtService(test_db).create_debt(owner_id, new_debt(client))

    assert debt.debt_number == "DEBT-000001"
    assert debt.remaining_amount_cents == 100000
    assert debt.status == "pending"
    assert debt.payment_terms == 30
    assert await client_totals(test_db, client) == (100000, 0)


@pytest.mark.asyncio
async def test_debt_numbers_are_sequential(test_db, owner_id, client):
    service = DebtService(test_db)
    first = await service.create_debt(owner_id, new_debt(client))
    second = await service.create_debt(owner_id, new_debt(client, 5000))

    assert (first.debt_number, second.debt_number) == ("DEBT-000001", "DEBT-000002")


@pytest.mark.asyncio
async def test_past_due_debt_is_created_overdue(test_db, owner_id, client):
    now = _utcnow()
    debt = await DebtService(test_db).create_debt(
        owner_id,
        new_debt(client, issue_date=now - timedelta(days=40), due_date=now - timedelta(days=10), interest_rate=5),
    )

    assert debt.status == "overdue"
    view = await DebtService(test_db).get_debt(str(debt.id), owner_id)
    assert view["months_overdue"] == 1
    assert view["interest_amount_cents"] == 5000
    assert view["total_with_interest_cents"] == 105000


@pytest.mark.asyncio
async def test_unknown_client_is_not_found(test_db, owner_id, client):
    payload = new_debt(client)
    payload.client_id = "507f1f77bcf86cd799439011"

    with pytest.raises(NotFoundError):
        await DebtService(test_db).create_debt(owner_id, payload)


@pytest.mark.asyncio
async def test_raising_total_moves_client_debt(test_db, owner_id, client):
    service = DebtService(test_db)
    debt = await service.create_debt(owner_id, new_debt(client))

    updated = await service.update_debt(str(debt.id), owner_id, DebtUpdate(total_amount_cents=150000, notes="scope"))

    assert updated.total_amount_cents == 150000
    assert updated.remaining_amount_cents == 150000
    assert updated.notes == "scope"
    assert await client_totals(test_db, client) == (150000, 0)


@pytest.mark.asyncio
async def test_total_below_paid_is_rejected(test_db, owner_id, client):
    service = DebtService(test_db)
    debt = await service.create_debt(owner_id, new_debt(client))
    await DebtRepository(test_db).apply_payment(debt.id, 60000, _utcnow())

    with pytest.raises(LedgerValidationError):
        await service.update_debt(str(debt.id), owner_id, DebtUpdate(total_amount_cents=50000))


@pytest.mark.asyncio
async def test_moving_due_date_rederives_status(test_db, owner_id, client):
    service = DebtService(test_db)
    debt = await service.create_debt(owner_id, new_debt(client))

    updated = await service.update_debt(
        str(debt.id), owner_id, DebtUpdate(due_date=_utcnow() - timedelta(days=2))
    )

    assert updated.status == "overdue"


@pytest.mark.asyncio
async def test_null_due_date_and_total_are_ignored(test_db, owner_id, client):
    service = DebtService(test_db)
    debt = await service.create_debt(owner_id, new_debt(client, notes="phase one"))

    updated = await service.update_debt(
        str(debt.id),
        owner_id,
        DebtUpdate(due_date=None, total_amount_cents=None, interest_rate=None, notes=None),
    )

    assert updated.status == "pending"
    assert updated.total_amount_cents == 100000
    assert updated.interest_rate == 0.0
    assert updated.notes is None
    assert (await DebtRepository(test_db).get(debt.id)).due_date is not None
    assert await client_totals(test_db, client) == (100000, 0)


@pytest.mark.asyncio
async def test_mark_paid_settles_remaining(test_db, owner_id, client):
    service = DebtService(test_db)
    debt = await service.create_debt(owner_id, new_debt(client))
    await DebtRepository(test_db).apply_payment(debt.id, 30000, _utcnow())
    await ClientRepository(test_db).adjust_totals(client.id, -30000, 30000)

    paid = await service.mark_debt_paid(str(debt.id), owner_id)

    assert paid.status == "paid"
    assert paid.paid_amount_cents == 100000
    assert paid.remaining_amount_cents == 0
    assert await client_totals(test_db, client) == (0, 100000)


@pytest.mark.asyncio
async def test_mark_paid_twice_is_rejected(test_db, owner_id, client):
    service = DebtService(test_db)
    debt = await service.create_debt(owner_id, new_debt(client))
    await service.update_debt_status(str(debt.id), owner_id, "paid")

    with pytest.raises(LedgerValidationError):
        await service.mark_debt_paid(str(debt.id), owner_id)
    assert await client_totals(test_db, client) == (0, 100000)


@pytest.mark.asyncio
async def test_cancel_and_reinstate(test_db, owner_id, client):
    service = DebtService(test_db)
    debt = await service.create_debt(owner_id, new_debt(client))

    cancelled = await service.update_debt_status(str(debt.id), owner_id, "cancelled")
    assert cancelled.status == "cancelled"
    assert await client_totals(test_db, client) == (0, 0)

    with pytest.raises(LedgerValidationError):
        await service.update_debt_status(str(debt.id), owner_id, "overdue")

    reinstated = await service.update_debt_status(str(debt.id), owner_id, "pending")
    assert reinstated.status == "pending"
    assert await client_totals(test_db, client) == (100000, 0)


@pytest.mark.asyncio
async def test_cancelled_debt_cannot_be_paid(test_db, owner_id, client):
    service = DebtService(test_db)
    debt = await service.create_debt(owner_id, new_debt(client))
    await service.update_debt_status(str(debt.id), owner_id, "cancelled")

    with pytest.raises(LedgerValidationError):
        await service.mark_debt_paid(str(debt.id), owner_id)


@pytest.mark.asyncio
async def test_delete_debt_releases_client_debt(test_db, owner_id, client):
    service = DebtService(test_db)
    debt = await service.create_debt(owner_id, new_debt(client))

    await service.delete_debt(str(debt.id), owner_id)

    assert await DebtRepository(test_db).get(debt.id) is None
    assert await client_totals(test_db, client) == (0, 0)


@pytest.mark.asyncio
async def test_debt_with_payments_cannot_be_deleted(test_db, owner_id, client, bank_account):
    service = DebtService(test_db)
    debt = await service.create_debt(owner_id, new_debt(client))
    await DebtPaymentRepository(test_db).insert(
        DebtPayment(
            owner_id=owner_id,
            payment_number="DP-000001",
            debt_id=debt.id,
            client_id=client.id,
            account_id=bank_account.id,
            amount_cents=1000,
            method="cash",
        )
    )

    with pytest.raises(LedgerValidationError):
        await service.delete_debt(str(debt.id), owner_id)
    assert await DebtRepository(test_db).get(debt.id) is not None


@pytest.mark.asyncio
async def test_overdue_upcoming_and_stats(test_db, owner_id, client):
    service = DebtService(test_db)
    now = _utcnow()
    await service.create_debt(
        owner_id,
        new_debt(client, 20000, issue_date=now - timedelta(days=60), due_date=now - timedelta(days=5)),
    )
    await service.create_debt(owner_id, new_debt(client, 30000, due_date=now + timedelta(days=3)))
    await service.create_debt(owner_id, new_debt(client, 40000, due_date=now + timedelta(days=20)))

    overdue = await service.list_overdue(owner_id)
    upcoming = await service.list_upcoming(owner_id, days=7)
    stats = await service.get_stats(owner_id)

    assert [debt["total_amount_cents"] for debt in overdue] == [20000]
    assert [debt["total_amount_cents"] for debt in upcoming] == [30000]
    assert stats["total_debts"] == 3
    assert stats["by_status"]["overdue"] == 1
    assert stats["by_status"]["pending"] == 2
    assert stats["total_remaining_cents"] == 90000
    assert stats["overdue_amount_cents"] == 20000


@pytest.mark.asyncio
async def test_reconcile_repairs_drifted_totals(test_db, owner_id, client):
    service = DebtService(test_db)
    await service.create_debt(owner_id, new_debt(client, 70000))
    await ClientRepository(test_db).set_fields(client.id, {"total_debt_cents": 1, "total_paid_cents": 2})

    reconciled = await ClientService(test_db).reconcile_totals(str(client.id), owner_id)

    assert reconciled.total_debt_cents == 70000
    assert reconciled.total_paid_cents == 0
