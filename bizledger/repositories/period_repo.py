from datetime import datetime
from typing import Optional

from pymongo.errors import DuplicateKeyError

from bizledger.core.exceptions import LockedRecordError
from bizledger.db.session import LedgerTransaction, session_of
from bizledger.models.financial_period import FinancialPeriod
from bizledger.repositories.base import BaseRepository


class FinancialPeriodRepository(BaseRepository[FinancialPeriod]):
    collection_name = "financial_periods"
    model = FinancialPeriod
    entity = "FinancialPeriod"

    async def find_month(
        self,
        year: int,
        month: int,
        tx: Optional[LedgerTransaction] = None,
    ) -> Optional[FinancialPeriod]:
        doc = await self.collection.find_one({"year": year, "month": month}, session=session_of(tx))
        if doc:
            return FinancialPeriod(**doc)
        return None

    async def get_or_create(
        self,
        year: int,
        month: int,
        tx: Optional[LedgerTransaction] = None,
    ) -> FinancialPeriod:
        """Fetch the (year, month) period, creating it open if missing."""
        existing = await self.find_month(year, month, tx)
        if existing:
            return existing
        try:
            return await self.insert(FinancialPeriod(year=year, month=month), tx)
        except DuplicateKeyError:
            # Created concurrently; the unique (year, month) index kept one.
            return await self.find_month(year, month, tx)

    async def ensure_open(self, when: datetime, tx: Optional[LedgerTransaction] = None) -> None:
        """Raise LockedRecordError when the month containing ``when`` is closed."""
        period = await self.find_month(when.year, when.month, tx)
        if period is not None and period.is_closed:
            raise LockedRecordError(f"Financial period {period.period_name} is closed")
