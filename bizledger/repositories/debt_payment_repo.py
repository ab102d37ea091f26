from datetime import datetime
from typing import Any, Optional

from bizledger.db.session import LedgerTransaction
from bizledger.models.debt_payment import DebtPayment, DebtPaymentStatus
from bizledger.repositories.base import BaseRepository


class DebtPaymentRepository(BaseRepository[DebtPayment]):
    collection_name = "debt_payments"
    model = DebtPayment
    entity = "DebtPayment"

    async def mark_completed(
        self,
        payment_id: Any,
        completed_at: datetime,
        tx: Optional[LedgerTransaction] = None,
    ) -> Optional[DebtPayment]:
        """
        Flip into completed. Returns None when the payment already was
        completed, which makes a repeated completion a no-op.
        """
        return await self.set_fields(
            payment_id,
            {"status": DebtPaymentStatus.COMPLETED.value, "completed_at": completed_at},
            tx,
            conditions={"status": {"$ne": DebtPaymentStatus.COMPLETED.value}},
        )
