from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from bizledger.models.base import Currency, MongoModel, PyObjectId, UtcDatetime, _utcnow


class InvoiceType(str, Enum):
    SENT = "sent"          # issued to a client
    RECEIVED = "received"  # received from a provider


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Invoice(MongoModel):
    owner_id: PyObjectId
    invoice_number: str
    type: InvoiceType
    status: InvoiceStatus = InvoiceStatus.DRAFT
    client: str
    provider: Optional[str] = None
    client_email: Optional[str] = None
    description: str
    total_cents: int
    currency: Currency = "USD"
    issue_date: UtcDatetime = Field(default_factory=_utcnow)
    due_date: UtcDatetime
    paid_date: Optional[UtcDatetime] = None
    notes: Optional[str] = None
    is_locked: bool = False  # set when its period closes

    def days_overdue(self, now: datetime) -> int:
        if self.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED) or self.due_date >= now:
            return 0
        delta = now - self.due_date
        return delta.days + (1 if delta.seconds or delta.microseconds else 0)
