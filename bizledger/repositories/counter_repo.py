from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from bizledger.db.session import LedgerTransaction, session_of


class CounterRepository:
    """Atomic sequences behind invoice, payment and debt numbers."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["counters"]

    async def next_value(self, name: str, tx: Optional[LedgerTransaction] = None) -> int:
        # Gaps after a rollback are acceptable, so nothing is compensated here.
        doc = await self.collection.find_one_and_update(
            {"_id": name},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
            session=session_of(tx),
        )
        return doc["seq"]

    async def next_number(
        self,
        prefix: str,
        width: int,
        year: Optional[int] = None,
        tx: Optional[LedgerTransaction] = None,
    ) -> str:
        """
        Format the next value of a sequence as a document number.

        ``next_number("INV", 4, 2025)`` -> ``INV-2025-0001``;
        ``next_number("DEBT", 6)`` -> ``DEBT-000001``. Yearly sequences restart
        each year.
        """
        if year is None:
            seq = await self.next_value(prefix, tx)
            return f"{prefix}-{seq:0{width}d}"
        seq = await self.next_value(f"{prefix}-{year}", tx)
        return f"{prefix}-{year}-{seq:0{width}d}"
