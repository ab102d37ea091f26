from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query, status

from bizledger.api.deps import get_owner_id
from bizledger.db.mongo import get_db
from bizledger.models.payment import PaymentMethod, PaymentStatus, PaymentType
from bizledger.schemas.payment import (
    PaymentCreate,
    PaymentResponse,
    PaymentStatusUpdate,
    PaymentsSummary,
    PaymentUpdate,
)
from bizledger.services.payment_service import PaymentService

router = APIRouter()


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payment_in: PaymentCreate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    """Record a payment and move its account balance."""
    payment = await PaymentService(db).create_payment(owner_id, payment_in)
    return PaymentResponse.model_validate(payment)


@router.get("", response_model=List[PaymentResponse])
async def list_payments(
    type: Optional[PaymentType] = None,
    status: Optional[PaymentStatus] = None,
    account_id: Optional[str] = None,
    method: Optional[PaymentMethod] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    payments = await PaymentService(db).list_payments(
        owner_id,
        type=type.value if type else None,
        status=status.value if status else None,
        account_id=account_id,
        method=method.value if method else None,
        skip=skip,
        limit=limit,
    )
    return [PaymentResponse.model_validate(payment) for payment in payments]


@router.get("/summary", response_model=PaymentsSummary)
async def get_payments_summary(owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    return await PaymentService(db).get_payments_summary(owner_id)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    payment = await PaymentService(db).get_payment(payment_id, owner_id)
    return PaymentResponse.model_validate(payment)


@router.put("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: str,
    payment_in: PaymentUpdate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    payment = await PaymentService(db).update_payment(payment_id, owner_id, payment_in)
    return PaymentResponse.model_validate(payment)


@router.patch("/{payment_id}/status", response_model=PaymentResponse)
async def update_payment_status(
    payment_id: str,
    status_in: PaymentStatusUpdate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    payment = await PaymentService(db).update_payment_status(payment_id, owner_id, status_in.status)
    return PaymentResponse.model_validate(payment)


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(payment_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    await PaymentService(db).delete_payment(payment_id, owner_id)
