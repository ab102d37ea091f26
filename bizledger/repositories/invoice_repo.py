from datetime import datetime
from typing import Any, Dict, Optional

from bizledger.db.session import LedgerTransaction, session_of
from bizledger.models.invoice import Invoice, InvoiceStatus
from bizledger.repositories.base import LockableRepository


class InvoiceRepository(LockableRepository[Invoice]):
    collection_name = "invoices"
    model = Invoice
    entity = "Invoice"

    async def mark_paid(
        self,
        invoice_id: Any,
        paid_date: datetime,
        tx: Optional[LedgerTransaction] = None,
    ) -> Invoice:
        """Flip an invoice to paid. Locked invoices raise LockedRecordError."""
        return await self.set_unlocked(
            invoice_id,
            {"status": InvoiceStatus.PAID.value, "paid_date": paid_date},
            tx,
        )

    async def totals_by_status(
        self,
        start: datetime,
        end: datetime,
        tx: Optional[LedgerTransaction] = None,
    ) -> Dict[str, Dict[str, int]]:
        """{status: {"count": n, "total_cents": sum}} for invoices created in [start, end)."""
        pipeline = [
            {"$match": {"created_at": {"$gte": start, "$lt": end}}},
            {"$group": {"_id": "$status", "count": {"$sum": 1}, "total_cents": {"$sum": "$total_cents"}}},
        ]
        rows = await self.collection.aggregate(pipeline, session=session_of(tx)).to_list(None)
        return {row["_id"]: {"count": row["count"], "total_cents": row["total_cents"]} for row in rows}
