import logging
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from bizledger.core.exceptions import LedgerValidationError, LockedRecordError
from bizledger.models.base import _utcnow
from bizledger.models.invoice import Invoice, InvoiceStatus, InvoiceType
from bizledger.repositories.counter_repo import CounterRepository
from bizledger.repositories.invoice_repo import InvoiceRepository
from bizledger.repositories.payment_repo import PaymentRepository
from bizledger.repositories.period_repo import FinancialPeriodRepository
from bizledger.schemas.invoice import InvoiceCreate, InvoiceUpdate

logger = logging.getLogger(__name__)

NUMBER_PREFIX = {
    InvoiceType.SENT.value: "INV",
    InvoiceType.RECEIVED.value: "REC",
}


class InvoiceService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.invoices = InvoiceRepository(db)
        self.payments = PaymentRepository(db)
        self.counters = CounterRepository(db)
        self.periods = FinancialPeriodRepository(db)

    async def _require_unlocked(self, invoice_id: str, owner_id: ObjectId) -> Invoice:
        invoice = await self.invoices.require(invoice_id, owner_id)
        if invoice.is_locked:
            raise LockedRecordError(f"Invoice {invoice.invoice_number} is locked by a closed period")
        return invoice

    async def create_invoice(self, owner_id: ObjectId, invoice_in: InvoiceCreate) -> Invoice:
        now = _utcnow()
        await self.periods.ensure_open(now)

        data = invoice_in.model_dump()
        issue_date = data.pop("issue_date") or now
        if invoice_in.due_date < issue_date:
            raise LedgerValidationError("Due date cannot be before the issue date")

        number = await self.counters.next_number(NUMBER_PREFIX[invoice_in.type], 4, issue_date.year)
        invoice = Invoice(owner_id=owner_id, invoice_number=number, issue_date=issue_date, **data)
        if invoice.status == InvoiceStatus.PAID:
            invoice.paid_date = now
        await self.invoices.insert(invoice)
        logger.info("Invoice created", extra={"invoice_number": number, "owner_id": str(owner_id)})
        return invoice

    async def get_invoice(self, invoice_id: str, owner_id: ObjectId) -> Invoice:
        return await self.invoices.require(invoice_id, owner_id)

    async def list_invoices(
        self,
        owner_id: ObjectId,
        type: Optional[str] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Invoice]:
        query = {"owner_id": owner_id}
        if type:
            query["type"] = type
        if status:
            query["status"] = status
        return await self.invoices.find(query, skip=skip, limit=limit)

    async def update_invoice(self, invoice_id: str, owner_id: ObjectId, invoice_in: InvoiceUpdate) -> Invoice:
        invoice = await self._require_unlocked(invoice_id, owner_id)
        updates = invoice_in.changes()
        if not updates:
            return invoice
        issue_date = updates.get("issue_date") or invoice.issue_date
        due_date = updates.get("due_date") or invoice.due_date
        if due_date < issue_date:
            raise LedgerValidationError("Due date cannot be before the issue date")
        return await self.invoices.set_unlocked(invoice.id, updates)

    async def update_status(self, invoice_id: str, owner_id: ObjectId, status: str) -> Invoice:
        invoice = await self._require_unlocked(invoice_id, owner_id)
        updates = {"status": InvoiceStatus(status).value}
        if status == InvoiceStatus.PAID and invoice.paid_date is None:
            updates["paid_date"] = _utcnow()
        elif status != InvoiceStatus.PAID:
            updates["paid_date"] = None
        updated = await self.invoices.set_unlocked(invoice.id, updates)
        logger.info("Invoice status changed", extra={"invoice_number": invoice.invoice_number, "status": status})
        return updated

    async def delete_invoice(self, invoice_id: str, owner_id: ObjectId) -> Invoice:
        """Remove an unlocked invoice that no payment refers to."""
        invoice = await self._require_unlocked(invoice_id, owner_id)
        if await self.payments.count({"invoice_id": invoice.id}):
            raise LedgerValidationError(f"Invoice {invoice.invoice_number} has payments and cannot be deleted")
        removed = await self.invoices.delete_unlocked(invoice.id)
        logger.info("Invoice deleted", extra={"invoice_number": invoice.invoice_number})
        return removed

    async def list_overdue(self, owner_id: ObjectId) -> List[Invoice]:
        """Sent invoices past their due date and not yet paid or cancelled."""
        query = {
            "owner_id": owner_id,
            "status": {"$in": [InvoiceStatus.SENT.value, InvoiceStatus.OVERDUE.value]},
            "due_date": {"$lt": _utcnow()},
        }
        return await self.invoices.find(query, sort=[("due_date", 1)])
