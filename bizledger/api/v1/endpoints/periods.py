from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Path

from bizledger.api.deps import get_owner_id
from bizledger.db.mongo import get_db
from bizledger.models.financial_period import FinancialPeriod, PeriodStatus
from bizledger.schemas.period import PeriodClose, PeriodResponse, PeriodSummary
from bizledger.services.period_service import PeriodService

router = APIRouter()


def _to_response(period: FinancialPeriod) -> PeriodResponse:
    return PeriodResponse.model_validate(period)


@router.get("", response_model=List[PeriodResponse])
async def list_periods(
    year: Optional[int] = None,
    status: Optional[PeriodStatus] = None,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    periods = await PeriodService(db).list_periods(year, status.value if status else None)
    return [_to_response(period) for period in periods]


@router.get("/current", response_model=PeriodResponse)
async def get_current_period(owner_id: ObjectId = Depends(get_owner_id), db=Depends(get_db)):
    return _to_response(await PeriodService(db).get_current_period())


@router.post("/close", response_model=PeriodResponse)
async def close_period(
    period_in: PeriodClose,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    """Close a month and lock its invoices and payments."""
    period = await PeriodService(db).close_period(period_in.year, period_in.month, owner_id)
    return _to_response(period)


@router.post("/reopen", response_model=PeriodResponse)
async def reopen_period(
    period_in: PeriodClose,
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    period = await PeriodService(db).reopen_period(period_in.year, period_in.month)
    return _to_response(period)


@router.get("/{year}/{month}/summary", response_model=PeriodSummary)
async def get_period_summary(
    year: int = Path(ge=2020, le=2100),
    month: int = Path(ge=1, le=12),
    owner_id: ObjectId = Depends(get_owner_id),
    db=Depends(get_db),
):
    summary = await PeriodService(db).get_period_summary(year, month)
    if summary["period"] is not None:
        summary["period"] = _to_response(summary["period"])
    return summary
