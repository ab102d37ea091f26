from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from bizledger.models.base import MongoModel, PyObjectId, UtcDatetime

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class PeriodStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class FinancialPeriod(MongoModel):
    """Calendar month whose invoices and payments can be frozen.

    Keyed by (year, month) across all tenants.
    """
    year: int = Field(ge=2020, le=2100)
    month: int = Field(ge=1, le=12)
    status: PeriodStatus = PeriodStatus.OPEN
    closed_by: Optional[PyObjectId] = None
    closed_at: Optional[UtcDatetime] = None
    total_invoices: int = 0
    total_payments: int = 0
    total_income_cents: int = 0
    total_expenses_cents: int = 0
    net_income_cents: int = 0

    @property
    def period_name(self) -> str:
        return f"{MONTH_NAMES[self.month - 1]} {self.year}"

    @property
    def is_closed(self) -> bool:
        return self.status == PeriodStatus.CLOSED

    def is_current(self, now: datetime) -> bool:
        return self.year == now.year and self.month == now.month
