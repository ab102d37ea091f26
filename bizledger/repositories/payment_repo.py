from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId

from bizledger.db.session import LedgerTransaction, session_of
from bizledger.models.payment import Payment, PaymentStatus
from bizledger.repositories.base import LockableRepository


class PaymentRepository(LockableRepository[Payment]):
    collection_name = "payments"
    model = Payment
    entity = "Payment"

    async def completed_totals_by_type(
        self,
        match: Dict[str, Any],
        tx: Optional[LedgerTransaction] = None,
    ) -> Dict[str, Dict[str, int]]:
        """{type: {"count": n, "total_cents": sum}} over completed payments matching ``match``."""
        pipeline = [
            {"$match": {**match, "status": PaymentStatus.COMPLETED.value}},
            {"$group": {"_id": "$type", "count": {"$sum": 1}, "total_cents": {"$sum": "$amount_cents"}}},
        ]
        rows = await self.collection.aggregate(pipeline, session=session_of(tx)).to_list(None)
        return {row["_id"]: {"count": row["count"], "total_cents": row["total_cents"]} for row in rows}

    async def window_totals(
        self,
        start: datetime,
        end: datetime,
        tx: Optional[LedgerTransaction] = None,
    ) -> Dict[str, Dict[str, int]]:
        return await self.completed_totals_by_type({"created_at": {"$gte": start, "$lt": end}}, tx)

    async def owner_totals(self, owner_id: ObjectId) -> Dict[str, Dict[str, int]]:
        return await self.completed_totals_by_type({"owner_id": owner_id})
