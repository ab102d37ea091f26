from enum import Enum
from typing import Optional

from pydantic import Field

from bizledger.models.base import MongoModel, PyObjectId, UtcDatetime, _utcnow


class DebtPaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class DebtPaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    OTHER = "other"


class DebtPayment(MongoModel):
    """A client's payment against one debt, deposited into an account.

    Completing it moves the debt, the client totals and the account balance
    together. Completed is terminal.
    """
    owner_id: PyObjectId
    payment_number: str
    debt_id: PyObjectId
    client_id: PyObjectId
    account_id: PyObjectId
    amount_cents: int
    status: DebtPaymentStatus = DebtPaymentStatus.PENDING
    method: DebtPaymentMethod
    payment_date: UtcDatetime = Field(default_factory=_utcnow)
    description: Optional[str] = None
    notes: Optional[str] = None
    completed_at: Optional[UtcDatetime] = None
