from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from bizledger.core.config import settings
from bizledger.models.base import PyObjectId, UtcDatetime
from bizledger.models.debt_payment import DebtPaymentMethod, DebtPaymentStatus
from bizledger.schemas.common import OwnedResponse, RequestModel


class DebtPaymentCreate(RequestModel):
    debt_id: str
    account_id: str
    amount_cents: int = Field(gt=0, le=settings.MAX_AMOUNT_CENTS)
    method: DebtPaymentMethod
    status: DebtPaymentStatus = DebtPaymentStatus.PENDING
    payment_date: Optional[UtcDatetime] = None
    description: Optional[str] = None
    notes: Optional[str] = None


class DebtPaymentStatusUpdate(RequestModel):
    status: DebtPaymentStatus


class DebtPaymentResponse(OwnedResponse):
    payment_number: str
    debt_id: PyObjectId
    client_id: PyObjectId
    account_id: PyObjectId
    amount_cents: int
    status: DebtPaymentStatus
    method: DebtPaymentMethod
    payment_date: datetime
    description: Optional[str] = None
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
