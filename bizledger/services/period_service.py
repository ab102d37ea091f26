"""
PeriodService - closing and reopening calendar months.

Closing a month computes its aggregates over [first day, first day of the
next month) UTC, marks the period closed and locks every invoice and payment
created in that window. Periods are keyed by (year, month) only, so the lock
applies to all tenants. Closing again recomputes the same aggregates and
re-issues the lock.
"""
import logging
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from bizledger.core.exceptions import LedgerValidationError, NotFoundError
from bizledger.db.session import LedgerTransaction, run_ledger_operation
from bizledger.models.base import _utcnow
from bizledger.models.financial_period import MONTH_NAMES, FinancialPeriod, PeriodStatus
from bizledger.models.payment import PaymentType
from bizledger.repositories.invoice_repo import InvoiceRepository
from bizledger.repositories.payment_repo import PaymentRepository
from bizledger.repositories.period_repo import FinancialPeriodRepository
from bizledger.utils.periods import is_future_period, month_window, validate_year_month

logger = logging.getLogger(__name__)

EMPTY_BUCKET = {"count": 0, "total_cents": 0}


class PeriodService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.periods = FinancialPeriodRepository(db)
        self.invoices = InvoiceRepository(db)
        self.payments = PaymentRepository(db)

    async def _aggregates(self, start: datetime, end: datetime, tx: Optional[LedgerTransaction] = None) -> dict:
        totals = await self.payments.window_totals(start, end, tx)
        income = totals.get(PaymentType.INCOME.value, EMPTY_BUCKET)["total_cents"]
        expenses = totals.get(PaymentType.EXPENSE.value, EMPTY_BUCKET)["total_cents"]
        return {
            "total_invoices": await self.invoices.count_in_window(start, end, tx),
            "total_payments": await self.payments.count_in_window(start, end, tx),
            "total_income_cents": income,
            "total_expenses_cents": expenses,
            "net_income_cents": income - expenses,
        }

    async def close_period(self, year: int, month: int, closed_by: ObjectId) -> FinancialPeriod:
        validate_year_month(year, month)
        now = _utcnow()
        if is_future_period(year, month, now):
            raise LedgerValidationError(f"Cannot close a future period: {MONTH_NAMES[month - 1]} {year}")
        start, end = month_window(year, month)

        async def operation(tx: LedgerTransaction) -> FinancialPeriod:
            period = await self.periods.get_or_create(year, month, tx)
            aggregates = await self._aggregates(start, end, tx)
            closed = await self.periods.set_fields(
                period.id,
                {
                    **aggregates,
                    "status": PeriodStatus.CLOSED.value,
                    "closed_by": closed_by,
                    "closed_at": now,
                },
                tx,
            )
            locked_invoices = await self.invoices.lock_window(start, end, True, tx)
            locked_payments = await self.payments.lock_window(start, end, True, tx)
            logger.info(
                "Period closed",
                extra={
                    "period": closed.period_name,
                    "locked_invoices": locked_invoices,
                    "locked_payments": locked_payments,
                    "net_income_cents": closed.net_income_cents,
                },
            )
            return closed

        return await run_ledger_operation(self.db, "close_period", operation)

    async def reopen_period(self, year: int, month: int) -> FinancialPeriod:
        """Open a closed month again: aggregates reset, its records unlocked."""
        validate_year_month(year, month)
        period = await self.periods.find_month(year, month)
        if period is None:
            raise NotFoundError("FinancialPeriod", f"{year}-{month:02d}")
        if not period.is_closed:
            raise LedgerValidationError(f"Period {period.period_name} is not closed")
        start, end = month_window(year, month)

        async def operation(tx: LedgerTransaction) -> FinancialPeriod:
            reopened = await self.periods.set_fields(
                period.id,
                {
                    "status": PeriodStatus.OPEN.value,
                    "closed_by": None,
                    "closed_at": None,
                    "total_invoices": 0,
                    "total_payments": 0,
                    "total_income_cents": 0,
                    "total_expenses_cents": 0,
                    "net_income_cents": 0,
                },
                tx,
            )
            await self.invoices.lock_window(start, end, False, tx)
            await self.payments.lock_window(start, end, False, tx)
            return reopened

        reopened = await run_ledger_operation(self.db, "reopen_period", operation)
        logger.info("Period reopened", extra={"period": reopened.period_name})
        return reopened

    async def get_current_period(self) -> FinancialPeriod:
        now = _utcnow()
        return await self.periods.get_or_create(now.year, now.month)

    async def list_periods(self, year: Optional[int] = None, status: Optional[str] = None) -> List[FinancialPeriod]:
        query = {}
        if year is not None:
            query["year"] = year
        if status:
            query["status"] = status
        return await self.periods.find(query, sort=[("year", -1), ("month", -1)])

    async def get_period_summary(self, year: int, month: int) -> dict:
        """Live figures for a month, whether or not it is closed."""
        start, end = month_window(year, month)
        invoices = await self.invoices.totals_by_status(start, end)
        payments = await self.payments.window_totals(start, end)
        income = payments.get(PaymentType.INCOME.value, EMPTY_BUCKET)["total_cents"]
        expenses = payments.get(PaymentType.EXPENSE.value, EMPTY_BUCKET)["total_cents"]
        return {
            "year": year,
            "month": month,
            "period_name": f"{MONTH_NAMES[month - 1]} {year}",
            "start_date": start,
            "end_date": end,
            "period": await self.periods.find_month(year, month),
            "invoices_by_status": invoices,
            "payments_by_type": payments,
            "total_income_cents": income,
            "total_expenses_cents": expenses,
            "net_income_cents": income - expenses,
        }
