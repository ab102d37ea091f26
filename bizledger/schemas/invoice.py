from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from bizledger.core.config import settings
from bizledger.models.base import Currency, UtcDatetime
from bizledger.models.invoice import InvoiceStatus, InvoiceType
from bizledger.schemas.common import OwnedResponse, RequestModel, UpdateModel


class InvoiceCreate(RequestModel):
    type: InvoiceType
    status: InvoiceStatus = InvoiceStatus.DRAFT
    client: str = Field(min_length=1, max_length=200)
    provider: Optional[str] = None
    client_email: Optional[str] = None
    description: str = Field(min_length=1)
    total_cents: int = Field(gt=0, le=settings.MAX_AMOUNT_CENTS)
    currency: Currency = settings.DEFAULT_CURRENCY
    issue_date: Optional[UtcDatetime] = None
    due_date: UtcDatetime
    notes: Optional[str] = None


class InvoiceUpdate(UpdateModel):
    clearable = frozenset({"provider", "client_email", "notes"})

    client: Optional[str] = Field(default=None, min_length=1, max_length=200)
    provider: Optional[str] = None
    client_email: Optional[str] = None
    description: Optional[str] = Field(default=None, min_length=1)
    total_cents: Optional[int] = Field(default=None, gt=0, le=settings.MAX_AMOUNT_CENTS)
    currency: Optional[Currency] = None
    issue_date: Optional[UtcDatetime] = None
    due_date: Optional[UtcDatetime] = None
    notes: Optional[str] = None


class InvoiceStatusUpdate(RequestModel):
    status: InvoiceStatus


class InvoiceResponse(OwnedResponse):
    invoice_number: str
    type: InvoiceType
    status: InvoiceStatus
    client: str
    provider: Optional[str] = None
    client_email: Optional[str] = None
    description: str
    total_cents: int
    currency: str
    issue_date: datetime
    due_date: datetime
    paid_date: Optional[datetime] = None
    notes: Optional[str] = None
    is_locked: bool
