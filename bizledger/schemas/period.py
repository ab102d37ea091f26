from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from bizledger.models.base import PyObjectId
from bizledger.models.financial_period import PeriodStatus
from bizledger.schemas.common import DocumentResponse, RequestModel


class PeriodClose(RequestModel):
    year: int = Field(ge=2020, le=2100)
    month: int = Field(ge=1, le=12)


class PeriodResponse(DocumentResponse):
    year: int
    month: int
    period_name: str
    status: PeriodStatus
    closed_by: Optional[PyObjectId] = None
    closed_at: Optional[datetime] = None
    total_invoices: int
    total_payments: int
    total_income_cents: int
    total_expenses_cents: int
    net_income_cents: int


class BucketTotals(BaseModel):
    count: int = 0
    total_cents: int = 0


class PeriodSummary(BaseModel):
    year: int
    month: int
    period_name: str
    start_date: datetime
    end_date: datetime
    period: Optional[PeriodResponse] = None
    invoices_by_status: Dict[str, BucketTotals]
    payments_by_type: Dict[str, BucketTotals]
    total_income_cents: int
    total_expenses_cents: int
    net_income_cents: int
