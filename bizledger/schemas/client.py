from typing import Optional

from pydantic import BaseModel, Field

from bizledger.models.client import ClientStatus, ClientType
from bizledger.schemas.common import OwnedResponse, RequestModel, UpdateModel


class ClientCreate(RequestModel):
    name: str = Field(min_length=1, max_length=200)
    type: ClientType = ClientType.INDIVIDUAL
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None
    credit_limit_cents: int = Field(default=0, ge=0)
    payment_terms: int = Field(default=30, ge=0, le=365)


class ClientUpdate(UpdateModel):
    clearable = frozenset({"email", "phone", "address", "tax_id", "contact_person", "notes"})

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    type: Optional[ClientType] = None
    status: Optional[ClientStatus] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None
    credit_limit_cents: Optional[int] = Field(default=None, ge=0)
    payment_terms: Optional[int] = Field(default=None, ge=0, le=365)


class ClientResponse(OwnedResponse):
    name: str
    type: ClientType
    status: ClientStatus
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None
    total_debt_cents: int
    total_paid_cents: int
    credit_limit_cents: int
    payment_terms: int
