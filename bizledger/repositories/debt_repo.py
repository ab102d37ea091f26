"""
DebtRepository - debt documents.

paid_amount_cents and remaining_amount_cents move together in one $inc,
guarded so remaining never drops below zero. The derived status is then
written against the exact amounts it was computed from.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from bizledger.core.exceptions import LedgerValidationError
from bizledger.db.session import LedgerTransaction
from bizledger.models.debt import Debt, DebtStatus
from bizledger.repositories.base import BaseRepository
from bizledger.utils.debt_calculations import derive_status

CLOSED_STATUSES = [DebtStatus.PAID.value, DebtStatus.CANCELLED.value]


class DebtRepository(BaseRepository[Debt]):
    collection_name = "debts"
    model = Debt
    entity = "Debt"

    async def refresh_status(
        self,
        debt: Debt,
        now: datetime,
        tx: Optional[LedgerTransaction] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Debt:
        """Persist the status derived from ``debt``'s amounts (cancelled stays cancelled)."""
        updates = dict(extra or {})
        if debt.status != DebtStatus.CANCELLED:
            status = derive_status(debt.remaining_amount_cents, debt.paid_amount_cents, debt.due_date, now)
            updates["status"] = status.value
        if not updates:
            return debt
        updated = await self.set_fields(
            debt.id,
            updates,
            tx,
            conditions={
                "paid_amount_cents": debt.paid_amount_cents,
                "total_amount_cents": debt.total_amount_cents,
            },
        )
        if updated is None:
            raise LedgerValidationError(f"Debt {debt.id} changed while being updated")
        return updated

    async def apply_payment(
        self,
        debt_id: Any,
        amount_cents: int,
        now: datetime,
        tx: Optional[LedgerTransaction] = None,
    ) -> Debt:
        """
        Add a payment to an open debt and re-derive its status.

        Rejects cancelled or fully paid debts and amounts above what remains.
        """
        after = await self.increment(
            debt_id,
            {"paid_amount_cents": amount_cents, "remaining_amount_cents": -amount_cents},
            tx,
            conditions={
                "status": {"$nin": CLOSED_STATUSES},
                "remaining_amount_cents": {"$gte": amount_cents},
            },
        )
        if after is None:
            current = await self.require(debt_id, tx=tx)
            if current.status in CLOSED_STATUSES:
                raise LedgerValidationError(f"Debt {current.debt_number} is {current.status}")
            raise LedgerValidationError(
                f"Payment of {amount_cents} cents exceeds remaining "
                f"{current.remaining_amount_cents} cents on debt {current.debt_number}"
            )
        return await self.refresh_status(after, now, tx)

    async def change_total(
        self,
        debt_id: Any,
        delta_cents: int,
        tx: Optional[LedgerTransaction] = None,
    ) -> Debt:
        """Move the total (and remaining) by ``delta_cents``; total may not drop below paid."""
        conditions = {}
        if delta_cents < 0:
            conditions["remaining_amount_cents"] = {"$gte": -delta_cents}
        after = await self.increment(
            debt_id,
            {"total_amount_cents": delta_cents, "remaining_amount_cents": delta_cents},
            tx,
            conditions=conditions,
        )
        if after is None:
            current = await self.require(debt_id, tx=tx)
            raise LedgerValidationError(
                f"Debt total cannot drop below the paid amount ({current.paid_amount_cents} cents)"
            )
        return after
