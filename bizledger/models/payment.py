from enum import Enum
from typing import Optional

from pydantic import Field

from bizledger.models.base import Currency, MongoModel, PyObjectId, UtcDatetime, _utcnow


class PaymentType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    TRANSFER = "transfer"
    OTHER = "other"


def balance_sign(payment_type: str) -> int:
    """+1 for money in, -1 for money out."""
    return 1 if payment_type == PaymentType.INCOME else -1


class Payment(MongoModel):
    """
    Money moving in or out of an account.

    applied_account_id/applied_delta_cents record the exact delta last applied
    to a balance; reverts use them verbatim.
    """
    owner_id: PyObjectId
    payment_number: str
    type: PaymentType
    status: PaymentStatus = PaymentStatus.PENDING
    method: PaymentMethod
    amount_cents: int
    currency: Currency = "USD"
    description: str
    category: Optional[str] = None
    payment_date: UtcDatetime = Field(default_factory=_utcnow)
    account_id: PyObjectId
    invoice_id: Optional[PyObjectId] = None
    notes: Optional[str] = None
    is_locked: bool = False

    applied_account_id: Optional[PyObjectId] = None
    applied_delta_cents: int = 0

    def settles_invoice(self) -> bool:
        return (
            self.invoice_id is not None
            and self.type == PaymentType.INCOME
            and self.status == PaymentStatus.COMPLETED
        )
