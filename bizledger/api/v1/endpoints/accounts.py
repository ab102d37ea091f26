from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query, status

from bizledger.api.deps import get_owner_id
from bizledger.db.mongo import get_db
from bizledger.models.account import AccountStatus, AccountType
from bizledger.schemas.account import (
    AccountCreate,
    AccountResponse,
    AccountStatusUpdate,
    AccountUpdate,
    TotalBalanceResponse,
    TransferRequest,
    TransferResponse,
)
from bizledger.schemas.payment import PaymentResponse
from bizledger.services.account_service import AccountService

router = APIRouter()


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    account_in: AccountCreate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    account = await AccountService(db).create_account(owner_id, account_in)
    return AccountResponse.model_validate(account)


@router.get("", response_model=List[AccountResponse])
async def list_accounts(
    type: Optional[AccountType] = None,
    status: Optional[AccountStatus] = None,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    accounts = await AccountService(db).list_accounts(
        owner_id,
        type=type.value if type else None,
        status=status.value if status else None,
    )
    return [AccountResponse.model_validate(account) for account in accounts]


@router.get("/total-balance", response_model=TotalBalanceResponse)
async def get_total_balance(owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    """Balance over active accounts, by type."""
    return await AccountService(db).total_balance(owner_id)


@router.post("/transfer", response_model=TransferResponse)
async def transfer(
    transfer_in: TransferRequest,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    result = await AccountService(db).transfer(owner_id, transfer_in)
    return TransferResponse(
        from_account=AccountResponse.model_validate(result["from_account"]),
        to_account=AccountResponse.model_validate(result["to_account"]),
        outgoing_payment_id=result["outgoing_payment_id"],
        incoming_payment_id=result["incoming_payment_id"],
    )


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(account_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    account = await AccountService(db).get_account(account_id, owner_id)
    return AccountResponse.model_validate(account)


@router.put("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: str,
    account_in: AccountUpdate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    account = await AccountService(db).update_account(account_id, owner_id, account_in)
    return AccountResponse.model_validate(account)


@router.patch("/{account_id}/status", response_model=AccountResponse)
async def update_account_status(
    account_id: str,
    status_in: AccountStatusUpdate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    account = await AccountService(db).update_status(account_id, owner_id, status_in.status)
    return AccountResponse.model_validate(account)


@router.get("/{account_id}/movements", response_model=List[PaymentResponse])
async def get_account_movements(
    account_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    payments = await AccountService(db).get_movements(account_id, owner_id, start_date, end_date, skip, limit)
    return [PaymentResponse.model_validate(payment) for payment in payments]
