from enum import Enum
from typing import Optional

from bizledger.models.base import Currency, MongoModel, PyObjectId


class AccountType(str, Enum):
    BANK = "bank"
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    SAVINGS = "savings"
    OTHER = "other"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CLOSED = "closed"


class Account(MongoModel):
    """
    Money holder whose balance moves with payments.

    Invariant: balance_cents == initial_balance_cents + applied deltas - reverted deltas.
    Balance changes only through AccountRepository.apply_delta/revert_delta.
    """
    owner_id: PyObjectId
    name: str
    type: AccountType
    status: AccountStatus = AccountStatus.ACTIVE
    account_number: Optional[str] = None
    bank_name: Optional[str] = None
    initial_balance_cents: int = 0
    balance_cents: int = 0
    currency: Currency = "USD"
    description: Optional[str] = None

    @property
    def has_balance(self) -> bool:
        return self.balance_cents > 0
