from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from bizledger.core.exceptions import LedgerValidationError, NotFoundError, PartialCascadeError
from bizledger.repositories.account_repo import AccountRepository
from bizledger.repositories.client_repo import ClientRepository
from bizledger.repositories.debt_payment_repo import DebtPaymentRepository
from bizledger.repositories.debt_repo import DebtRepository
from bizledger.schemas.debt import DebtCreate
from bizledger.schemas.debt_payment import DebtPaymentCreate
from bizledger.services.debt_payment_service import DebtPaymentService
from bizledger.services.debt_service import DebtService


@pytest_asyncio.fixture
async def debt(test_db, owner_id, client):
    return await DebtService(test_db).create_debt(
        owner_id,
        DebtCreate(client_id=str(client.id), description="Annual support", total_amount_cents=100000),
    )


def payment_for(debt, account, amount_cents, status="pending"):
    return DebtPaymentCreate(
        debt_id=str(debt.id),
        account_id=str(account.id),
        amount_cents=amount_cents,
        method="bank_transfer",
        status=status,
    )


async def ledger_state(db, debt, client, account):
    stored_debt = await DebtRepository(db).get(debt.id)
    stored_client = await ClientRepository(db).get(client.id)
    stored_account = await AccountRepository(db).get(account.id)
    return {
        "paid": stored_debt.paid_amount_cents,
        "remaining": stored_debt.remaining_amount_cents,
        "status": stored_debt.status,
        "client_debt": stored_client.total_debt_cents,
        "client_paid": stored_client.total_paid_cents,
        "balance": stored_account.balance_cents,
    }


@pytest.mark.asyncio
async def test_completion_moves_all_four_aggregates(test_db, owner_id, client, bank_account, debt):
    """300.00 against a 1000.00 debt: partial, client 700/300, account +300."""
    service = DebtPaymentService(test_db)
    payment = await service.create_debt_payment(owner_id, payment_for(debt, bank_account, 30000))
    assert payment.payment_number == "DP-000001"
    assert payment.client_id == client.id

    completed = await service.complete_debt_payment(str(payment.id), owner_id)

    assert completed.status == "completed"
    assert completed.completed_at is not None
    assert await ledger_state(test_db, debt, client, bank_account) == {
        "paid": 30000,
        "remaining": 70000,
        "status": "partial",
        "client_debt": 70000,
        "client_paid": 30000,
        "balance": 130000,
    }


@pytest.mark.asyncio
async def test_pending_payment_changes_nothing(test_db, owner_id, client, bank_account, debt):
    await DebtPaymentService(test_db).create_debt_payment(owner_id, payment_for(debt, bank_account, 30000))

    state = await ledger_state(test_db, debt, client, bank_account)
    assert state["paid"] == 0
    assert state["client_debt"] == 100000
    assert state["balance"] == 100000


@pytest.mark.asyncio
async def test_created_completed_runs_cascade(test_db, owner_id, client, bank_account, debt):
    payment = await DebtPaymentService(test_db).create_debt_payment(
        owner_id, payment_for(debt, bank_account, 100000, status="completed")
    )

    assert payment.status == "completed"
    state = await ledger_state(test_db, debt, client, bank_account)
    assert state["status"] == "paid"
    assert state["remaining"] == 0
    assert state["client_debt"] == 0
    assert state["client_paid"] == 100000


@pytest.mark.asyncio
async def test_completing_twice_applies_once(test_db, owner_id, client, bank_account, debt):
    service = DebtPaymentService(test_db)
    payment = await service.create_debt_payment(owner_id, payment_for(debt, bank_account, 25000))

    await service.complete_debt_payment(str(payment.id), owner_id)
    await service.complete_debt_payment(str(payment.id), owner_id)
    await service.update_status(str(payment.id), owner_id, "completed")

    state = await ledger_state(test_db, debt, client, bank_account)
    assert state["paid"] == 25000
    assert state["balance"] == 125000


@pytest.mark.asyncio
async def test_concurrent_flip_is_a_no_op(test_db, owner_id, client, bank_account, debt):
    """A second completion that read the payment as pending still applies nothing."""
    service = DebtPaymentService(test_db)
    payment = await service.create_debt_payment(owner_id, payment_for(debt, bank_account, 25000))
    await service.complete_debt_payment(str(payment.id), owner_id)

    stale = payment
    assert stale.status == "pending"
    with patch.object(DebtPaymentRepository, "require", AsyncMock(return_value=stale)):
        await service.complete_debt_payment(str(payment.id), owner_id)

    state = await ledger_state(test_db, debt, client, bank_account)
    assert state["paid"] == 25000
    assert state["client_paid"] == 25000


@pytest.mark.asyncio
async def test_overpayment_is_rejected(test_db, owner_id, client, bank_account, debt):
    with pytest.raises(LedgerValidationError):
        await DebtPaymentService(test_db).create_debt_payment(
            owner_id, payment_for(debt, bank_account, 100001)
        )
    assert await DebtPaymentRepository(test_db).count({}) == 0


@pytest.mark.asyncio
async def test_completion_exceeding_remaining_rolls_back(test_db, owner_id, client, bank_account, debt):
    """Two pending payments that together overpay: the second completion fails cleanly."""
    service = DebtPaymentService(test_db)
    first = await service.create_debt_payment(owner_id, payment_for(debt, bank_account, 80000))
    second = await service.create_debt_payment(owner_id, payment_for(debt, bank_account, 50000))
    await service.complete_debt_payment(str(first.id), owner_id)

    with pytest.raises(LedgerValidationError):
        await service.complete_debt_payment(str(second.id), owner_id)

    assert (await DebtPaymentRepository(test_db).get(second.id)).status == "pending"
    state = await ledger_state(test_db, debt, client, bank_account)
    assert state["paid"] == 80000
    assert state["balance"] == 180000


@pytest.mark.asyncio
async def test_paying_cancelled_debt_is_rejected(test_db, owner_id, client, bank_account, debt):
    await DebtService(test_db).update_debt_status(str(debt.id), owner_id, "cancelled")

    with pytest.raises(LedgerValidationError):
        await DebtPaymentService(test_db).create_debt_payment(owner_id, payment_for(debt, bank_account, 1000))


@pytest.mark.asyncio
async def test_failed_account_write_leaves_nothing_applied(test_db, owner_id, client, bank_account, debt):
    service = DebtPaymentService(test_db)
    payment = await service.create_debt_payment(owner_id, payment_for(debt, bank_account, 30000))

    with patch.object(AccountRepository, "apply_delta", AsyncMock(side_effect=NotFoundError("Account", "gone"))):
        with pytest.raises(NotFoundError):
            await service.complete_debt_payment(str(payment.id), owner_id)

    assert (await DebtPaymentRepository(test_db).get(payment.id)).status == "pending"
    assert await ledger_state(test_db, debt, client, bank_account) == {
        "paid": 0,
        "remaining": 100000,
        "status": "pending",
        "client_debt": 100000,
        "client_paid": 0,
        "balance": 100000,
    }


class UndoFailingCollection:
    """Delegates to a real collection, but plain update_one (used only by undos) fails."""

    def __init__(self, collection):
        self._collection = collection

    def __getattr__(self, name):
        return getattr(self._collection, name)

    async def update_one(self, *args, **kwargs):
        raise RuntimeError("clients collection unavailable")


@pytest.mark.asyncio
async def test_failed_compensation_reports_partial_cascade(test_db, owner_id, client, bank_account, debt):
    service = DebtPaymentService(test_db)
    payment = await service.create_debt_payment(owner_id, payment_for(debt, bank_account, 30000))
    service.clients.collection = UndoFailingCollection(service.clients.collection)

    with patch.object(AccountRepository, "apply_delta", AsyncMock(side_effect=RuntimeError("boom"))):
        with pytest.raises(PartialCascadeError) as exc_info:
            await service.complete_debt_payment(str(payment.id), owner_id)

    error = exc_info.value
    assert error.operation == "complete_debt_payment"
    assert len(error.uncompensated) == 1
    assert error.uncompensated[0].startswith("increment Client")
    assert isinstance(error.__cause__, RuntimeError)
    # Every other step was undone
    state = await ledger_state(test_db, debt, client, bank_account)
    assert state["paid"] == 0
    assert (await DebtPaymentRepository(test_db).get(payment.id)).status == "pending"


@pytest.mark.asyncio
async def test_completed_payment_cannot_be_cancelled(test_db, owner_id, client, bank_account, debt):
    service = DebtPaymentService(test_db)
    payment = await service.create_debt_payment(
        owner_id, payment_for(debt, bank_account, 1000, status="completed")
    )

    with pytest.raises(LedgerValidationError):
        await service.update_status(str(payment.id), owner_id, "cancelled")


@pytest.mark.asyncio
async def test_pending_payment_can_be_cancelled(test_db, owner_id, client, bank_account, debt):
    service = DebtPaymentService(test_db)
    payment = await service.create_debt_payment(owner_id, payment_for(debt, bank_account, 1000))

    cancelled = await service.update_status(str(payment.id), owner_id, "cancelled")

    assert cancelled.status == "cancelled"
    listed = await service.list_debt_payments(owner_id, debt_id=str(debt.id))
    assert [p.id for p in listed] == [payment.id]
