from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from bizledger.core.config import settings
from bizledger.models.base import Currency, PyObjectId, UtcDatetime
from bizledger.models.payment import PaymentMethod, PaymentStatus, PaymentType
from bizledger.schemas.common import OwnedResponse, RequestModel, UpdateModel


class PaymentCreate(RequestModel):
    type: PaymentType
    status: PaymentStatus = PaymentStatus.PENDING
    method: PaymentMethod
    amount_cents: int = Field(gt=0, le=settings.MAX_AMOUNT_CENTS)
    currency: Currency = settings.DEFAULT_CURRENCY
    description: str = Field(min_length=1)
    category: Optional[str] = None
    payment_date: Optional[UtcDatetime] = None
    account_id: str
    invoice_id: Optional[str] = None
    notes: Optional[str] = None


class PaymentUpdate(UpdateModel):
    clearable = frozenset({"category", "invoice_id", "notes"})

    type: Optional[PaymentType] = None
    method: Optional[PaymentMethod] = None
    amount_cents: Optional[int] = Field(default=None, gt=0, le=settings.MAX_AMOUNT_CENTS)
    description: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    payment_date: Optional[UtcDatetime] = None
    account_id: Optional[str] = None
    invoice_id: Optional[str] = None
    notes: Optional[str] = None


class PaymentStatusUpdate(RequestModel):
    status: PaymentStatus


class PaymentResponse(OwnedResponse):
    payment_number: str
    type: PaymentType
    status: PaymentStatus
    method: PaymentMethod
    amount_cents: int
    currency: str
    description: str
    category: Optional[str] = None
    payment_date: datetime
    account_id: PyObjectId
    invoice_id: Optional[PyObjectId] = None
    notes: Optional[str] = None
    is_locked: bool


class PaymentsSummary(BaseModel):
    total_income_cents: int
    total_expenses_cents: int
    net_cents: int
    income_count: int
    expense_count: int
