"""
Debt model - money a client owes the owner.

Design principles:
- remaining_amount_cents and status are derived from the amounts and due
  date (bizledger.utils.debt_calculations) on every write
- cancelled is the only status set directly
- All amounts in integer cents
"""
from enum import Enum
from typing import Optional

from pydantic import Field

from bizledger.models.base import MongoModel, PyObjectId, UtcDatetime, _utcnow


class DebtStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class DebtPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Debt(MongoModel):
    """
    Invariants:
    - remaining_amount_cents == total_amount_cents - paid_amount_cents >= 0
    - status is derived unless cancelled
    """
    owner_id: PyObjectId
    debt_number: str
    client_id: PyObjectId
    description: str
    total_amount_cents: int
    paid_amount_cents: int = 0
    remaining_amount_cents: int = 0
    status: DebtStatus = DebtStatus.PENDING
    priority: DebtPriority = DebtPriority.MEDIUM
    due_date: UtcDatetime
    issue_date: UtcDatetime = Field(default_factory=_utcnow)
    payment_terms: int = 30
    interest_rate: float = 0.0  # monthly %, charged on late remaining amount
    notes: Optional[str] = None
    email_notifications: bool = True

    @property
    def is_cancelled(self) -> bool:
        return self.status == DebtStatus.CANCELLED
