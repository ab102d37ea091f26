"""
DebtPaymentService - client payments against debts.

Completing a debt payment is one ledger operation with four writes after
the status flip:

    debt.paid += amount          (remaining/status re-derived)
    client.total_paid += amount
    client.total_debt -= amount
    account.balance += amount

The flip into completed is conditional, so completing twice applies the
cascade once. Completed is terminal.
"""
import logging
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from bizledger.core.exceptions import LedgerValidationError
from bizledger.db.session import LedgerTransaction, run_ledger_operation
from bizledger.models.base import _utcnow
from bizledger.models.debt_payment import DebtPayment, DebtPaymentStatus
from bizledger.repositories.account_repo import AccountRepository
from bizledger.repositories.client_repo import ClientRepository
from bizledger.repositories.counter_repo import CounterRepository
from bizledger.repositories.debt_payment_repo import DebtPaymentRepository
from bizledger.repositories.debt_repo import CLOSED_STATUSES, DebtRepository
from bizledger.schemas.debt_payment import DebtPaymentCreate

logger = logging.getLogger(__name__)


class DebtPaymentService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.debt_payments = DebtPaymentRepository(db)
        self.debts = DebtRepository(db)
        self.clients = ClientRepository(db)
        self.accounts = AccountRepository(db)
        self.counters = CounterRepository(db)

    async def _complete(self, payment: DebtPayment, tx: LedgerTransaction) -> DebtPayment:
        now = _utcnow()
        flipped = await self.debt_payments.mark_completed(payment.id, now, tx)
        if flipped is None:
            logger.info(
                "Debt payment already completed",
                extra={"payment_number": payment.payment_number},
            )
            return await self.debt_payments.require(payment.id, tx=tx)

        await self.debts.apply_payment(flipped.debt_id, flipped.amount_cents, now, tx)
        await self.clients.adjust_totals(
            flipped.client_id,
            debt_delta_cents=-flipped.amount_cents,
            paid_delta_cents=flipped.amount_cents,
            tx=tx,
        )
        await self.accounts.apply_delta(flipped.account_id, flipped.amount_cents, 1, tx)
        return flipped

    async def create_debt_payment(self, owner_id: ObjectId, payment_in: DebtPaymentCreate) -> DebtPayment:
        """Record a payment; one created as completed runs the cascade right away."""
        debt = await self.debts.require(payment_in.debt_id, owner_id)
        account = await self.accounts.require(payment_in.account_id, owner_id)
        if debt.status in CLOSED_STATUSES:
            raise LedgerValidationError(f"Debt {debt.debt_number} is {debt.status}")
        if payment_in.amount_cents > debt.remaining_amount_cents:
            raise LedgerValidationError(
                f"Payment of {payment_in.amount_cents} cents exceeds remaining "
                f"{debt.remaining_amount_cents} cents on debt {debt.debt_number}"
            )

        complete = payment_in.status == DebtPaymentStatus.COMPLETED
        data = payment_in.model_dump(exclude={"debt_id", "account_id", "status", "payment_date"})

        async def operation(tx: LedgerTransaction) -> DebtPayment:
            payment = DebtPayment(
                owner_id=owner_id,
                payment_number=await self.counters.next_number("DP", 6, tx=tx),
                debt_id=debt.id,
                client_id=debt.client_id,
                account_id=account.id,
                status=DebtPaymentStatus.PENDING if complete else payment_in.status,
                payment_date=payment_in.payment_date or _utcnow(),
                **data,
            )
            await self.debt_payments.insert(payment, tx)
            if complete:
                return await self._complete(payment, tx)
            return payment

        payment = await run_ledger_operation(self.db, "create_debt_payment", operation)
        logger.info(
            "Debt payment created",
            extra={
                "payment_number": payment.payment_number,
                "debt_number": debt.debt_number,
                "amount_cents": payment.amount_cents,
                "status": payment.status,
            },
        )
        return payment

    async def complete_debt_payment(self, payment_id: str, owner_id: ObjectId) -> DebtPayment:
        current = await self.debt_payments.require(payment_id, owner_id)
        if current.status == DebtPaymentStatus.COMPLETED:
            return current

        async def operation(tx: LedgerTransaction) -> DebtPayment:
            return await self._complete(current, tx)

        payment = await run_ledger_operation(self.db, "complete_debt_payment", operation)
        logger.info(
            "Debt payment completed",
            extra={"payment_number": payment.payment_number, "amount_cents": payment.amount_cents},
        )
        return payment

    async def update_status(self, payment_id: str, owner_id: ObjectId, status: str) -> DebtPayment:
        status = DebtPaymentStatus(status)
        if status == DebtPaymentStatus.COMPLETED:
            return await self.complete_debt_payment(payment_id, owner_id)

        current = await self.debt_payments.require(payment_id, owner_id)
        if current.status == DebtPaymentStatus.COMPLETED:
            raise LedgerValidationError(f"Debt payment {current.payment_number} is already completed")
        updated = await self.debt_payments.set_fields(
            current.id,
            {"status": status.value},
            conditions={"status": {"$ne": DebtPaymentStatus.COMPLETED.value}},
        )
        if updated is None:
            raise LedgerValidationError(f"Debt payment {current.payment_number} is already completed")
        return updated

    async def get_debt_payment(self, payment_id: str, owner_id: ObjectId) -> DebtPayment:
        return await self.debt_payments.require(payment_id, owner_id)

    async def list_debt_payments(
        self,
        owner_id: ObjectId,
        debt_id: Optional[str] = None,
        client_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[DebtPayment]:
        query = {"owner_id": owner_id}
        if debt_id:
            query["debt_id"] = self.debts.object_id(debt_id)
        if client_id:
            query["client_id"] = self.clients.object_id(client_id)
        return await self.debt_payments.find(query, sort=[("payment_date", -1)], skip=skip, limit=limit)
