"""
DebtService - debts and the client aggregates they feed.

Every write re-derives remaining_amount_cents and status from the amounts
and the due date, and moves client.total_debt_cents/total_paid_cents in the
same ledger operation. Cancelling removes the remaining amount from the
client's outstanding debt; reinstating puts it back.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from bizledger.core.exceptions import LedgerValidationError
from bizledger.db.session import LedgerTransaction, run_ledger_operation
from bizledger.models.base import _utcnow
from bizledger.models.debt import Debt, DebtStatus
from bizledger.repositories.client_repo import ClientRepository
from bizledger.repositories.counter_repo import CounterRepository
from bizledger.repositories.debt_payment_repo import DebtPaymentRepository
from bizledger.repositories.debt_repo import CLOSED_STATUSES, DebtRepository
from bizledger.schemas.debt import DebtCreate, DebtUpdate
from bizledger.utils.debt_calculations import derive_status, evaluate_debt

logger = logging.getLogger(__name__)


def debt_view(debt: Debt, now: Optional[datetime] = None) -> dict:
    """Debt plus its read-time interest view; status re-derived unless cancelled."""
    snapshot = evaluate_debt(
        debt.total_amount_cents,
        debt.paid_amount_cents,
        debt.due_date,
        debt.interest_rate,
        now or _utcnow(),
    )
    view = debt.model_dump()
    if not debt.is_cancelled:
        view["status"] = snapshot.status
    view["months_overdue"] = snapshot.months_overdue
    view["interest_amount_cents"] = snapshot.interest_amount_cents
    view["total_with_interest_cents"] = snapshot.total_with_interest_cents
    return view


class DebtService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.debts = DebtRepository(db)
        self.clients = ClientRepository(db)
        self.debt_payments = DebtPaymentRepository(db)
        self.counters = CounterRepository(db)

    # ===== CASCADES =====

    async def create_debt(self, owner_id: ObjectId, debt_in: DebtCreate) -> Debt:
        client = await self.clients.require(debt_in.client_id, owner_id)
        now = _utcnow()
        issue_date = debt_in.issue_date or now
        payment_terms = debt_in.payment_terms if debt_in.payment_terms is not None else client.payment_terms
        due_date = debt_in.due_date or issue_date + timedelta(days=payment_terms)
        if due_date < issue_date:
            raise LedgerValidationError("Due date cannot be before the issue date")

        snapshot = evaluate_debt(debt_in.total_amount_cents, 0, due_date, debt_in.interest_rate, now)
        data = debt_in.model_dump(exclude={"client_id", "issue_date", "due_date", "payment_terms"})

        async def operation(tx: LedgerTransaction) -> Debt:
            debt = Debt(
                owner_id=owner_id,
                debt_number=await self.counters.next_number("DEBT", 6, tx=tx),
                client_id=client.id,
                issue_date=issue_date,
                due_date=due_date,
                payment_terms=payment_terms,
                paid_amount_cents=0,
                remaining_amount_cents=snapshot.remaining_amount_cents,
                status=snapshot.status,
                **data,
            )
            await self.debts.insert(debt, tx)
            await self.clients.adjust_totals(client.id, debt_delta_cents=debt.total_amount_cents, tx=tx)
            return debt

        debt = await run_ledger_operation(self.db, "create_debt", operation)
        logger.info(
            "Debt created",
            extra={
                "debt_number": debt.debt_number,
                "client_id": str(client.id),
                "total_amount_cents": debt.total_amount_cents,
            },
        )
        return debt

    async def update_debt(self, debt_id: str, owner_id: ObjectId, debt_in: DebtUpdate) -> Debt:
        """
        Partial update. A new total must cover what was already paid; its
        difference moves the client's outstanding debt unless cancelled.
        """
        current = await self.debts.require(debt_id, owner_id)
        updates = debt_in.changes()
        new_total = updates.pop("total_amount_cents", None)
        if new_total is not None and new_total < current.paid_amount_cents:
            raise LedgerValidationError(
                f"Debt total cannot drop below the paid amount ({current.paid_amount_cents} cents)"
            )
        delta = 0 if new_total is None else new_total - current.total_amount_cents
        now = _utcnow()

        async def operation(tx: LedgerTransaction) -> Debt:
            debt = current
            if delta:
                debt = await self.debts.change_total(current.id, delta, tx)
                if not debt.is_cancelled:
                    await self.clients.adjust_totals(debt.client_id, debt_delta_cents=delta, tx=tx)
            if "due_date" in updates:
                debt = debt.model_copy(update={"due_date": updates["due_date"]})
            return await self.debts.refresh_status(debt, now, tx, extra=updates)

        debt = await run_ledger_operation(self.db, "update_debt", operation)
        logger.info("Debt updated", extra={"debt_number": debt.debt_number, "total_delta_cents": delta})
        return debt

    async def mark_debt_paid(self, debt_id: str, owner_id: ObjectId) -> Debt:
        """Settle the whole remaining amount at once."""
        current = await self.debts.require(debt_id, owner_id)
        if current.status == DebtStatus.PAID:
            raise LedgerValidationError(f"Debt {current.debt_number} is already paid")
        if current.is_cancelled:
            raise LedgerValidationError(f"Debt {current.debt_number} is cancelled")
        remaining = current.remaining_amount_cents
        now = _utcnow()

        async def operation(tx: LedgerTransaction) -> Debt:
            debt = await self.debts.apply_payment(current.id, remaining, now, tx)
            await self.clients.adjust_totals(
                debt.client_id,
                debt_delta_cents=-remaining,
                paid_delta_cents=remaining,
                tx=tx,
            )
            return debt

        debt = await run_ledger_operation(self.db, "mark_debt_paid", operation)
        logger.info("Debt marked paid", extra={"debt_number": debt.debt_number, "settled_cents": remaining})
        return debt

    async def update_debt_status(self, debt_id: str, owner_id: ObjectId, status: str) -> Debt:
        """
        Explicit status transitions.

        - paid: same as mark_debt_paid
        - cancelled: drops the remaining amount from the client's debt
        - pending/partial/overdue: only the status the amounts derive to;
          on a cancelled debt this reinstates it
        """
        status = DebtStatus(status)
        if status == DebtStatus.PAID:
            return await self.mark_debt_paid(debt_id, owner_id)

        current = await self.debts.require(debt_id, owner_id)
        now = _utcnow()

        if status == DebtStatus.CANCELLED:
            if current.is_cancelled:
                return current
            if current.status == DebtStatus.PAID:
                raise LedgerValidationError(f"Debt {current.debt_number} is already paid")

            async def cancel(tx: LedgerTransaction) -> Debt:
                debt = await self.debts.set_fields(
                    current.id,
                    {"status": DebtStatus.CANCELLED.value},
                    tx,
                    conditions={"status": {"$nin": CLOSED_STATUSES}},
                )
                if debt is None:
                    raise LedgerValidationError(f"Debt {current.debt_number} changed while being cancelled")
                await self.clients.adjust_totals(
                    debt.client_id, debt_delta_cents=-debt.remaining_amount_cents, tx=tx
                )
                return debt

            debt = await run_ledger_operation(self.db, "cancel_debt", cancel)
            logger.info("Debt cancelled", extra={"debt_number": debt.debt_number})
            return debt

        derived = derive_status(current.remaining_amount_cents, current.paid_amount_cents, current.due_date, now)
        if derived != status:
            raise LedgerValidationError(
                f"Debt {current.debt_number} derives to {derived.value}, not {status.value}"
            )
        if not current.is_cancelled:
            return await self.debts.refresh_status(current, now)

        async def reinstate(tx: LedgerTransaction) -> Debt:
            debt = await self.debts.set_fields(
                current.id,
                {"status": derived.value},
                tx,
                conditions={"status": DebtStatus.CANCELLED.value},
            )
            if debt is None:
                raise LedgerValidationError(f"Debt {current.debt_number} changed while being reinstated")
            await self.clients.adjust_totals(
                debt.client_id, debt_delta_cents=debt.remaining_amount_cents, tx=tx
            )
            return debt

        debt = await run_ledger_operation(self.db, "reinstate_debt", reinstate)
        logger.info("Debt reinstated", extra={"debt_number": debt.debt_number, "status": debt.status})
        return debt

    async def delete_debt(self, debt_id: str, owner_id: ObjectId) -> Debt:
        """Remove a debt with no payments recorded against it."""
        current = await self.debts.require(debt_id, owner_id)
        if await self.debt_payments.count({"debt_id": current.id}):
            raise LedgerValidationError(f"Debt {current.debt_number} has payments and cannot be deleted")

        async def operation(tx: LedgerTransaction) -> Debt:
            removed = await self.debts.delete(current.id, tx)
            if removed is None:
                raise LedgerValidationError(f"Debt {current.debt_number} was already deleted")
            debt_delta = 0 if removed.is_cancelled else -removed.remaining_amount_cents
            await self.clients.adjust_totals(
                removed.client_id,
                debt_delta_cents=debt_delta,
                paid_delta_cents=-removed.paid_amount_cents,
                tx=tx,
            )
            return removed

        removed = await run_ledger_operation(self.db, "delete_debt", operation)
        logger.info("Debt deleted", extra={"debt_number": removed.debt_number})
        return removed

    # ===== READS =====

    async def get_debt(self, debt_id: str, owner_id: ObjectId) -> dict:
        return debt_view(await self.debts.require(debt_id, owner_id))

    async def list_debts(
        self,
        owner_id: ObjectId,
        status: Optional[str] = None,
        client_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[dict]:
        query = {"owner_id": owner_id}
        if status:
            query["status"] = status
        if client_id:
            query["client_id"] = self.clients.object_id(client_id)
        now = _utcnow()
        debts = await self.debts.find(query, sort=[("due_date", 1)], skip=skip, limit=limit)
        return [debt_view(debt, now) for debt in debts]

    async def list_overdue(self, owner_id: ObjectId) -> List[dict]:
        now = _utcnow()
        query = {
            "owner_id": owner_id,
            "status": {"$nin": CLOSED_STATUSES},
            "due_date": {"$lt": now},
        }
        debts = await self.debts.find(query, sort=[("due_date", 1)])
        return [debt_view(debt, now) for debt in debts]

    async def list_upcoming(self, owner_id: ObjectId, days: int = 7) -> List[dict]:
        """Open debts falling due within the next ``days`` days."""
        now = _utcnow()
        query = {
            "owner_id": owner_id,
            "status": {"$nin": CLOSED_STATUSES},
            "due_date": {"$gte": now, "$lte": now + timedelta(days=days)},
        }
        debts = await self.debts.find(query, sort=[("due_date", 1)])
        return [debt_view(debt, now) for debt in debts]

    async def get_stats(self, owner_id: ObjectId) -> dict:
        now = _utcnow()
        debts = await self.debts.find({"owner_id": owner_id})
        stats = {
            "total_debts": len(debts),
            "by_status": {status.value: 0 for status in DebtStatus},
            "total_amount_cents": 0,
            "total_paid_cents": 0,
            "total_remaining_cents": 0,
            "overdue_count": 0,
            "overdue_amount_cents": 0,
            "accrued_interest_cents": 0,
        }
        for debt in debts:
            view = debt_view(debt, now)
            stats["by_status"][view["status"]] += 1
            if debt.is_cancelled:
                continue
            stats["total_amount_cents"] += debt.total_amount_cents
            stats["total_paid_cents"] += debt.paid_amount_cents
            stats["total_remaining_cents"] += debt.remaining_amount_cents
            stats["accrued_interest_cents"] += view["interest_amount_cents"]
            if view["status"] == DebtStatus.OVERDUE:
                stats["overdue_count"] += 1
                stats["overdue_amount_cents"] += debt.remaining_amount_cents
        return stats
