"""
PaymentService - payments and their cascades onto accounts and invoices.

Cascade per operation:
1. create: insert payment, apply its delta to the account, settle the
   linked invoice when the payment is completed income
2. update: revert the stored applied delta, persist the new fields, apply
   the new delta, settle the invoice if it newly qualifies
3. update_status: settle the invoice when the payment becomes completed
   income
4. delete: revert the stored applied delta, remove the payment

Each cascade runs as one ledger operation: a locked invoice or a missing
account anywhere in it leaves nothing applied.
"""
import logging
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from bizledger.core.exceptions import LockedRecordError
from bizledger.db.session import LedgerTransaction, run_ledger_operation
from bizledger.models.base import _utcnow
from bizledger.models.invoice import InvoiceStatus
from bizledger.models.payment import Payment, PaymentStatus, PaymentType, balance_sign
from bizledger.repositories.account_repo import AccountRepository
from bizledger.repositories.counter_repo import CounterRepository
from bizledger.repositories.invoice_repo import InvoiceRepository
from bizledger.repositories.payment_repo import PaymentRepository
from bizledger.repositories.period_repo import FinancialPeriodRepository
from bizledger.schemas.payment import PaymentCreate, PaymentUpdate

logger = logging.getLogger(__name__)

NUMBER_PREFIX = {
    PaymentType.INCOME.value: "PAY-IN",
    PaymentType.EXPENSE.value: "PAY-OUT",
}


def _ensure_unlocked(payment: Payment) -> None:
    if payment.is_locked:
        raise LockedRecordError(f"Payment {payment.payment_number} is locked by a closed period")


class PaymentService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.payments = PaymentRepository(db)
        self.accounts = AccountRepository(db)
        self.invoices = InvoiceRepository(db)
        self.counters = CounterRepository(db)
        self.periods = FinancialPeriodRepository(db)

    async def _revert_applied(self, payment: Payment, tx: LedgerTransaction) -> None:
        """Undo exactly the delta recorded on the payment."""
        if payment.applied_account_id is None or not payment.applied_delta_cents:
            return
        delta = payment.applied_delta_cents
        await self.accounts.revert_delta(payment.applied_account_id, abs(delta), 1 if delta > 0 else -1, tx)

    async def _settle_invoice(self, payment: Payment, tx: LedgerTransaction) -> None:
        invoice = await self.invoices.require(payment.invoice_id, payment.owner_id, tx)
        if invoice.status == InvoiceStatus.PAID:
            return
        await self.invoices.mark_paid(invoice.id, _utcnow(), tx)
        logger.info(
            "Invoice settled by payment",
            extra={"invoice_number": invoice.invoice_number, "payment_number": payment.payment_number},
        )

    # ===== CASCADES =====

    async def create_payment(self, owner_id: ObjectId, payment_in: PaymentCreate) -> Payment:
        now = _utcnow()
        await self.periods.ensure_open(now)
        account = await self.accounts.require(payment_in.account_id, owner_id)
        invoice_id = None
        if payment_in.invoice_id:
            invoice_id = (await self.invoices.require(payment_in.invoice_id, owner_id)).id

        sign = balance_sign(payment_in.type)
        data = payment_in.model_dump(exclude={"account_id", "invoice_id", "payment_date"})

        async def operation(tx: LedgerTransaction) -> Payment:
            number = await self.counters.next_number(NUMBER_PREFIX[payment_in.type], 4, now.year, tx)
            payment = Payment(
                owner_id=owner_id,
                payment_number=number,
                account_id=account.id,
                invoice_id=invoice_id,
                payment_date=payment_in.payment_date or now,
                applied_account_id=account.id,
                applied_delta_cents=sign * payment_in.amount_cents,
                **data,
            )
            await self.payments.insert(payment, tx)
            await self.accounts.apply_delta(account.id, payment.amount_cents, sign, tx)
            if payment.settles_invoice():
                await self._settle_invoice(payment, tx)
            return payment

        payment = await run_ledger_operation(self.db, "create_payment", operation)
        logger.info(
            "Payment created",
            extra={
                "payment_number": payment.payment_number,
                "account_id": str(account.id),
                "delta_cents": payment.applied_delta_cents,
            },
        )
        return payment

    async def update_payment(self, payment_id: str, owner_id: ObjectId, payment_in: PaymentUpdate) -> Payment:
        """
        Apply field changes. A change of account, amount or type moves the
        balances: the stored delta is reverted and the new one applied.
        """
        current = await self.payments.require(payment_id, owner_id)
        _ensure_unlocked(current)
        updates = payment_in.changes()
        if not updates:
            return current
        changed_fields = sorted(updates)

        if "account_id" in updates:
            updates["account_id"] = (await self.accounts.require(updates["account_id"], owner_id)).id
        if updates.get("invoice_id") is not None:
            updates["invoice_id"] = (await self.invoices.require(updates["invoice_id"], owner_id)).id

        target = current.model_copy(update=updates)
        moves_balance = (
            target.account_id != current.account_id
            or target.amount_cents != current.amount_cents
            or target.type != current.type
        )
        if moves_balance:
            new_delta = balance_sign(target.type) * target.amount_cents
            updates["applied_account_id"] = target.account_id
            updates["applied_delta_cents"] = new_delta
        newly_settles = target.settles_invoice() and not (
            current.settles_invoice() and current.invoice_id == target.invoice_id
        )

        async def operation(tx: LedgerTransaction) -> Payment:
            if moves_balance:
                await self._revert_applied(current, tx)
            updated = await self.payments.set_unlocked(current.id, updates, tx)
            if moves_balance:
                await self.accounts.apply_delta(
                    updated.account_id, updated.amount_cents, balance_sign(updated.type), tx
                )
            if newly_settles:
                await self._settle_invoice(updated, tx)
            return updated

        updated = await run_ledger_operation(self.db, "update_payment", operation)
        logger.info(
            "Payment updated",
            extra={
                "payment_number": updated.payment_number,
                "rebalanced": moves_balance,
                "fields": changed_fields,
            },
        )
        return updated

    async def update_payment_status(self, payment_id: str, owner_id: ObjectId, status: str) -> Payment:
        current = await self.payments.require(payment_id, owner_id)
        _ensure_unlocked(current)

        async def operation(tx: LedgerTransaction) -> Payment:
            updated = await self.payments.set_unlocked(current.id, {"status": PaymentStatus(status).value}, tx)
            if updated.settles_invoice() and not current.settles_invoice():
                await self._settle_invoice(updated, tx)
            return updated

        updated = await run_ledger_operation(self.db, "update_payment_status", operation)
        logger.info("Payment status changed", extra={"payment_number": updated.payment_number, "status": status})
        return updated

    async def delete_payment(self, payment_id: str, owner_id: ObjectId) -> Payment:
        current = await self.payments.require(payment_id, owner_id)
        _ensure_unlocked(current)

        async def operation(tx: LedgerTransaction) -> Payment:
            removed = await self.payments.delete_unlocked(current.id, tx)
            await self._revert_applied(removed, tx)
            return removed

        removed = await run_ledger_operation(self.db, "delete_payment", operation)
        logger.info(
            "Payment deleted",
            extra={"payment_number": removed.payment_number, "reverted_cents": removed.applied_delta_cents},
        )
        return removed

    # ===== READS =====

    async def get_payment(self, payment_id: str, owner_id: ObjectId) -> Payment:
        return await self.payments.require(payment_id, owner_id)

    async def list_payments(
        self,
        owner_id: ObjectId,
        type: Optional[str] = None,
        status: Optional[str] = None,
        account_id: Optional[str] = None,
        method: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Payment]:
        query = {"owner_id": owner_id}
        if type:
            query["type"] = type
        if status:
            query["status"] = status
        if account_id:
            query["account_id"] = self.accounts.object_id(account_id)
        if method:
            query["method"] = method
        return await self.payments.find(query, sort=[("payment_date", -1)], skip=skip, limit=limit)

    async def get_payments_summary(self, owner_id: ObjectId) -> dict:
        """Completed income vs. expenses for the owner."""
        totals = await self.payments.owner_totals(owner_id)
        income = totals.get(PaymentType.INCOME.value, {"count": 0, "total_cents": 0})
        expenses = totals.get(PaymentType.EXPENSE.value, {"count": 0, "total_cents": 0})
        return {
            "total_income_cents": income["total_cents"],
            "total_expenses_cents": expenses["total_cents"],
            "net_cents": income["total_cents"] - expenses["total_cents"],
            "income_count": income["count"],
            "expense_count": expenses["count"],
        }
