from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query, status

from bizledger.api.deps import get_owner_id
from bizledger.db.mongo import get_db
from bizledger.schemas.debt_payment import DebtPaymentCreate, DebtPaymentResponse, DebtPaymentStatusUpdate
from bizledger.services.debt_payment_service import DebtPaymentService

router = APIRouter()


@router.post("", response_model=DebtPaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_debt_payment(
    payment_in: DebtPaymentCreate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    payment = await DebtPaymentService(db).create_debt_payment(owner_id, payment_in)
    return DebtPaymentResponse.model_validate(payment)


@router.get("", response_model=List[DebtPaymentResponse])
async def list_debt_payments(
    debt_id: Optional[str] = None,
    client_id: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    payments = await DebtPaymentService(db).list_debt_payments(owner_id, debt_id, client_id, skip, limit)
    return [DebtPaymentResponse.model_validate(payment) for payment in payments]


@router.get("/{payment_id}", response_model=DebtPaymentResponse)
async def get_debt_payment(payment_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    payment = await DebtPaymentService(db).get_debt_payment(payment_id, owner_id)
    return DebtPaymentResponse.model_validate(payment)


@router.post("/{payment_id}/complete", response_model=DebtPaymentResponse)
async def complete_debt_payment(payment_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    """Apply the payment to its debt, client and account. Repeating it is a no-op."""
    payment = await DebtPaymentService(db).complete_debt_payment(payment_id, owner_id)
    return DebtPaymentResponse.model_validate(payment)


@router.patch("/{payment_id}/status", response_model=DebtPaymentResponse)
async def update_debt_payment_status(
    payment_id: str,
    status_in: DebtPaymentStatusUpdate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    payment = await DebtPaymentService(db).update_status(payment_id, owner_id, status_in.status)
    return DebtPaymentResponse.model_validate(payment)
