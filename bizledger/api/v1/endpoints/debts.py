from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query, status

from bizledger.api.deps import get_owner_id
from bizledger.db.mongo import get_db
from bizledger.models.debt import DebtStatus
from bizledger.schemas.debt import DebtCreate, DebtResponse, DebtStats, DebtStatusUpdate, DebtUpdate
from bizledger.services.debt_service import DebtService, debt_view

router = APIRouter()


@router.post("", response_model=DebtResponse, status_code=status.HTTP_201_CREATED)
async def create_debt(
    debt_in: DebtCreate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    debt = await DebtService(db).create_debt(owner_id, debt_in)
    return DebtResponse.model_validate(debt_view(debt))


@router.get("", response_model=List[DebtResponse])
async def list_debts(
    status: Optional[DebtStatus] = None,
    client_id: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    debts = await DebtService(db).list_debts(
        owner_id,
        status=status.value if status else None,
        client_id=client_id,
        skip=skip,
        limit=limit,
    )
    return [DebtResponse.model_validate(debt) for debt in debts]


@router.get("/overdue", response_model=List[DebtResponse])
async def list_overdue_debts(owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    debts = await DebtService(db).list_overdue(owner_id)
    return [DebtResponse.model_validate(debt) for debt in debts]


@router.get("/upcoming", response_model=List[DebtResponse])
async def list_upcoming_debts(
    days: int = Query(7, ge=1, le=365),
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    debts = await DebtService(db).list_upcoming(owner_id, days)
    return [DebtResponse.model_validate(debt) for debt in debts]


@router.get("/stats", response_model=DebtStats)
async def get_debt_stats(owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    return await DebtService(db).get_stats(owner_id)


@router.get("/{debt_id}", response_model=DebtResponse)
async def get_debt(debt_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    """Debt with accrued interest computed for today."""
    debt = await DebtService(db).get_debt(debt_id, owner_id)
    return DebtResponse.model_validate(debt)


@router.put("/{debt_id}", response_model=DebtResponse)
async def update_debt(
    debt_id: str,
    debt_in: DebtUpdate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    debt = await DebtService(db).update_debt(debt_id, owner_id, debt_in)
    return DebtResponse.model_validate(debt_view(debt))


@router.post("/{debt_id}/mark-paid", response_model=DebtResponse)
async def mark_debt_paid(debt_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    debt = await DebtService(db).mark_debt_paid(debt_id, owner_id)
    return DebtResponse.model_validate(debt_view(debt))


@router.patch("/{debt_id}/status", response_model=DebtResponse)
async def update_debt_status(
    debt_id: str,
    status_in: DebtStatusUpdate,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    debt = await DebtService(db).update_debt_status(debt_id, owner_id, status_in.status)
    return DebtResponse.model_validate(debt_view(debt))


@router.delete("/{debt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_debt(debt_id: str, owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    await DebtService(db).delete_debt(debt_id, owner_id)
