from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from bizledger.core.config import settings
from bizledger.models.account import AccountStatus, AccountType
from bizledger.models.base import Currency, PyObjectId
from bizledger.schemas.common import OwnedResponse, RequestModel, UpdateModel


class AccountCreate(RequestModel):
    name: str = Field(min_length=1, max_length=200)
    type: AccountType
    account_number: Optional[str] = None
    bank_name: Optional[str] = None
    initial_balance_cents: int = 0
    currency: Currency = settings.DEFAULT_CURRENCY
    description: Optional[str] = None


class AccountUpdate(UpdateModel):
    """Descriptive fields only; balances move through payments."""
    clearable = frozenset({"account_number", "bank_name", "description"})

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    type: Optional[AccountType] = None
    account_number: Optional[str] = None
    bank_name: Optional[str] = None
    description: Optional[str] = None


class AccountStatusUpdate(RequestModel):
    status: AccountStatus


class TransferRequest(RequestModel):
    from_account_id: str
    to_account_id: str
    amount_cents: int = Field(gt=0, le=settings.MAX_AMOUNT_CENTS)
    description: Optional[str] = None
    notes: Optional[str] = None
    payment_date: Optional[datetime] = None


class AccountResponse(OwnedResponse):
    name: str
    type: AccountType
    status: AccountStatus
    account_number: Optional[str] = None
    bank_name: Optional[str] = None
    initial_balance_cents: int
    balance_cents: int
    currency: str
    description: Optional[str] = None


class TransferResponse(BaseModel):
    from_account: AccountResponse
    to_account: AccountResponse
    outgoing_payment_id: PyObjectId
    incoming_payment_id: PyObjectId


class TotalBalanceResponse(BaseModel):
    total_balance_cents: int
    by_type: Dict[str, int]
    currency: str
