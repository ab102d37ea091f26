from datetime import timedelta

import pytest
from bson import ObjectId

from bizledger.core.exceptions import LedgerValidationError, NotFoundError
from bizledger.models.base import _utcnow
from bizledger.models.invoice import InvoiceStatus
from bizledger.schemas.invoice import InvoiceCreate, InvoiceUpdate
from bizledger.schemas.payment import PaymentCreate
from bizledger.services.invoice_service import InvoiceService
from bizledger.services.payment_service import PaymentService


def invoice_in(**overrides):
    fields = {
        "type": "sent",
        "client": "Acme Corp",
        "description": "Consulting",
        "total_cents": 75000,
        "due_date": _utcnow() + timedelta(days=30),
    }
    fields.update(overrides)
    return InvoiceCreate(**fields)


@pytest.mark.asyncio
async def test_numbers_follow_type_and_year(test_db, owner_id):
    service = InvoiceService(test_db)
    year = _utcnow().year

    first = await service.create_invoice(owner_id, invoice_in())
    second = await service.create_invoice(owner_id, invoice_in())
    received = await service.create_invoice(owner_id, invoice_in(type="received", provider="Paper Co"))

    assert first.invoice_number == f"INV-{year}-0001"
    assert second.invoice_number == f"INV-{year}-0002"
    assert received.invoice_number == f"REC-{year}-0001"
    assert first.status == InvoiceStatus.DRAFT
    assert first.is_locked is False


@pytest.mark.asyncio
async def test_due_date_before_issue_date_is_rejected(test_db, owner_id):
    now = _utcnow()
    with pytest.raises(LedgerValidationError):
        await InvoiceService(test_db).create_invoice(
            owner_id, invoice_in(issue_date=now, due_date=now - timedelta(days=1))
        )


@pytest.mark.asyncio
async def test_update_keeps_date_order(test_db, owner_id):
    service = InvoiceService(test_db)
    invoice = await service.create_invoice(owner_id, invoice_in())

    with pytest.raises(LedgerValidationError):
        await service.update_invoice(
            str(invoice.id), owner_id, InvoiceUpdate(due_date=invoice.issue_date - timedelta(days=1))
        )

    updated = await service.update_invoice(str(invoice.id), owner_id, InvoiceUpdate(total_cents=80000))
    assert updated.total_cents == 80000


@pytest.mark.asyncio
async def test_paid_status_stamps_and_clears_paid_date(test_db, owner_id):
    service = InvoiceService(test_db)
    invoice = await service.create_invoice(owner_id, invoice_in(status="sent"))

    paid = await service.update_status(str(invoice.id), owner_id, "paid")
    assert paid.status == InvoiceStatus.PAID
    assert paid.paid_date is not None

    reopened = await service.update_status(str(invoice.id), owner_id, "sent")
    assert reopened.paid_date is None


@pytest.mark.asyncio
async def test_delete_removes_invoice(test_db, owner_id):
    service = InvoiceService(test_db)
    invoice = await service.create_invoice(owner_id, invoice_in())

    await service.delete_invoice(str(invoice.id), owner_id)

    with pytest.raises(NotFoundError):
        await service.get_invoice(str(invoice.id), owner_id)


@pytest.mark.asyncio
async def test_invoices_are_scoped_to_owner(test_db, owner_id):
    service = InvoiceService(test_db)
    invoice = await service.create_invoice(owner_id, invoice_in())

    with pytest.raises(NotFoundError):
        await service.get_invoice(str(invoice.id), ObjectId())
    assert await service.list_invoices(ObjectId()) == []


@pytest.mark.asyncio
async def test_overdue_lists_only_sent_invoices_past_due(test_db, owner_id):
    service = InvoiceService(test_db)
    now = _utcnow()
    past = {"issue_date": now - timedelta(days=40), "due_date": now - timedelta(days=10)}

    late = await service.create_invoice(owner_id, invoice_in(status="sent", **past))
    await service.create_invoice(owner_id, invoice_in(status="draft", **past))
    await service.create_invoice(owner_id, invoice_in(status="sent"))

    overdue = await service.list_overdue(owner_id)

    assert [invoice.id for invoice in overdue] == [late.id]


@pytest.mark.asyncio
async def test_null_clears_only_optional_invoice_fields(test_db, owner_id):
    service = InvoiceService(test_db)
    invoice = await service.create_invoice(owner_id, invoice_in(notes="net 30"))
    before = await service.get_invoice(str(invoice.id), owner_id)

    updated = await service.update_invoice(
        str(invoice.id), owner_id, InvoiceUpdate(due_date=None, client=None, total_cents=None, notes=None)
    )

    assert updated.notes is None
    assert updated.client == "Acme Corp"
    assert updated.total_cents == 75000
    stored = await service.get_invoice(str(invoice.id), owner_id)
    assert stored.due_date == before.due_date
    assert stored.notes is None


@pytest.mark.asyncio
async def test_invoice_with_payments_cannot_be_deleted(test_db, owner_id, bank_account):
    invoices = InvoiceService(test_db)
    payments = PaymentService(test_db)
    invoice = await invoices.create_invoice(owner_id, invoice_in(status="sent"))
    payment = await payments.create_payment(
        owner_id,
        PaymentCreate(
            type="income",
            method="cash",
            amount_cents=75000,
            description="Consulting",
            account_id=str(bank_account.id),
            invoice_id=str(invoice.id),
        ),
    )

    with pytest.raises(LedgerValidationError):
        await invoices.delete_invoice(str(invoice.id), owner_id)

    completed = await payments.update_payment_status(str(payment.id), owner_id, "completed")
    assert completed.status == "completed"
    assert (await invoices.get_invoice(str(invoice.id), owner_id)).status == InvoiceStatus.PAID
