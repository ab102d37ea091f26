from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from bizledger.core.config import settings
from bizledger.models.base import PyObjectId, UtcDatetime
from bizledger.models.debt import DebtPriority, DebtStatus
from bizledger.schemas.common import OwnedResponse, RequestModel, UpdateModel


class DebtCreate(RequestModel):
    client_id: str
    description: str = Field(min_length=1)
    total_amount_cents: int = Field(gt=0, le=settings.MAX_AMOUNT_CENTS)
    priority: DebtPriority = DebtPriority.MEDIUM
    issue_date: Optional[UtcDatetime] = None
    # Defaults to issue_date + payment_terms days
    due_date: Optional[UtcDatetime] = None
    payment_terms: Optional[int] = Field(default=None, ge=0, le=365)
    interest_rate: float = Field(default=0.0, ge=0, le=100)
    notes: Optional[str] = None
    email_notifications: bool = True


class DebtUpdate(UpdateModel):
    clearable = frozenset({"notes"})

    description: Optional[str] = Field(default=None, min_length=1)
    total_amount_cents: Optional[int] = Field(default=None, gt=0, le=settings.MAX_AMOUNT_CENTS)
    priority: Optional[DebtPriority] = None
    due_date: Optional[UtcDatetime] = None
    payment_terms: Optional[int] = Field(default=None, ge=0, le=365)
    interest_rate: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    email_notifications: Optional[bool] = None


class DebtStatusUpdate(RequestModel):
    status: DebtStatus


class DebtResponse(OwnedResponse):
    debt_number: str
    client_id: PyObjectId
    description: str
    total_amount_cents: int
    paid_amount_cents: int
    remaining_amount_cents: int
    status: DebtStatus
    priority: DebtPriority
    due_date: datetime
    issue_date: datetime
    payment_terms: int
    interest_rate: float
    notes: Optional[str] = None
    email_notifications: bool
    # Read-time view, never stored
    months_overdue: int = 0
    interest_amount_cents: int = 0
    total_with_interest_cents: int = 0


class DebtStats(BaseModel):
    total_debts: int
    by_status: Dict[str, int]
    total_amount_cents: int
    total_paid_cents: int
    total_remaining_cents: int
    overdue_count: int
    overdue_amount_cents: int
    accrued_interest_cents: int
