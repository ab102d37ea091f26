from enum import Enum
from typing import Optional

from bizledger.models.base import MongoModel, PyObjectId


class ClientType(str, Enum):
    INDIVIDUAL = "individual"
    COMPANY = "company"
    GOVERNMENT = "government"


class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"


class Client(MongoModel):
    """
    Customer owing debts.

    total_debt_cents / total_paid_cents are running aggregates over the
    client's non-cancelled debts, moved by the debt cascades in the same
    transaction as the debt write.
    """
    owner_id: PyObjectId
    name: str
    type: ClientType
    status: ClientStatus = ClientStatus.ACTIVE
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None
    total_debt_cents: int = 0
    total_paid_cents: int = 0
    credit_limit_cents: int = 0
    payment_terms: int = 30  # days
