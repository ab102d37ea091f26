from typing import Any, Dict, Optional

from bson import ObjectId

from bizledger.core.exceptions import NotFoundError
from bizledger.db.session import LedgerTransaction, session_of
from bizledger.models.client import Client
from bizledger.models.debt import DebtStatus
from bizledger.repositories.base import BaseRepository


class ClientRepository(BaseRepository[Client]):
    collection_name = "clients"
    model = Client
    entity = "Client"

    async def adjust_totals(
        self,
        client_id: Any,
        debt_delta_cents: int = 0,
        paid_delta_cents: int = 0,
        tx: Optional[LedgerTransaction] = None,
    ) -> Client:
        """Move the running debt/paid aggregates by the given deltas."""
        increments = {}
        if debt_delta_cents:
            increments["total_debt_cents"] = debt_delta_cents
        if paid_delta_cents:
            increments["total_paid_cents"] = paid_delta_cents
        if not increments:
            return await self.require(client_id, tx=tx)
        updated = await self.increment(client_id, increments, tx)
        if updated is None:
            raise NotFoundError(self.entity, client_id)
        return updated

    async def debt_totals(self, client_id: ObjectId, tx: Optional[LedgerTransaction] = None) -> Dict[str, int]:
        """
        Recompute the aggregates from the client's debts.

        Outstanding debt counts non-cancelled debts only; paid amounts count
        every debt, since cancelling does not refund what was paid.
        """
        totals = {"total_debt_cents": 0, "total_paid_cents": 0}
        cursor = self.db["debts"].find({"client_id": client_id}, session=session_of(tx))
        for doc in await cursor.to_list(None):
            totals["total_paid_cents"] += doc.get("paid_amount_cents", 0)
            if doc.get("status") != DebtStatus.CANCELLED.value:
                totals["total_debt_cents"] += doc.get("remaining_amount_cents", 0)
        return totals
