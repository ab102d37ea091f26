"""
Debt status and interest derivation.

Pure functions of (total, paid, due date, monthly interest rate, now). They
run on every debt write to fill remaining_amount_cents/status and again on
read for the interest view, so a stored status never drifts from its inputs.

Rules:
- remaining = total - paid, never negative
- status: paid if remaining <= 0, partial if anything was paid, overdue if
  past due, otherwise pending. A partial payment wins over lateness.
  Cancelled is an explicit transition, not derived here.
- months overdue: ceil(ceil(days late) / 30)
- interest: round_half_up(remaining * rate * months / 100), display only,
  never folded back into the total
"""
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from bizledger.core.exceptions import LedgerValidationError
from bizledger.models.debt import DebtStatus

SECONDS_PER_DAY = 86400
DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class DebtSnapshot:
    """Derived view of a debt at a point in time."""
    remaining_amount_cents: int
    status: str
    months_overdue: int
    interest_amount_cents: int

    @property
    def total_with_interest_cents(self) -> int:
        return self.remaining_amount_cents + self.interest_amount_cents


def calculate_remaining(total_amount_cents: int, paid_amount_cents: int) -> int:
    """Remaining balance; rejects amounts that would break remaining >= 0."""
    if total_amount_cents < 0:
        raise LedgerValidationError(f"Debt total must be non-negative: {total_amount_cents}")
    if paid_amount_cents < 0:
        raise LedgerValidationError(f"Paid amount must be non-negative: {paid_amount_cents}")
    if paid_amount_cents > total_amount_cents:
        raise LedgerValidationError(
            f"Paid amount ({paid_amount_cents}) exceeds debt total ({total_amount_cents})"
        )
    return total_amount_cents - paid_amount_cents


def derive_status(remaining_amount_cents: int, paid_amount_cents: int, due_date: datetime, now: datetime) -> DebtStatus:
    if remaining_amount_cents <= 0:
        return DebtStatus.PAID
    if paid_amount_cents > 0:
        return DebtStatus.PARTIAL
    if now > due_date:
        return DebtStatus.OVERDUE
    return DebtStatus.PENDING


def months_overdue(due_date: datetime, now: datetime) -> int:
    if now <= due_date:
        return 0
    days_late = math.ceil((now - due_date).total_seconds() / SECONDS_PER_DAY)
    return math.ceil(days_late / DAYS_PER_MONTH)


def calculate_interest(remaining_amount_cents: int, interest_rate: Optional[float], months: int) -> int:
    """Accrued interest in cents, rounded half-up."""
    if not interest_rate or interest_rate <= 0 or months <= 0:
        return 0
    amount = Decimal(remaining_amount_cents) * Decimal(str(interest_rate)) * months / 100
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def evaluate_debt(
    total_amount_cents: int,
    paid_amount_cents: int,
    due_date: datetime,
    interest_rate: Optional[float],
    now: datetime,
) -> DebtSnapshot:
    remaining = calculate_remaining(total_amount_cents, paid_amount_cents)
    status = derive_status(remaining, paid_amount_cents, due_date, now)
    months = months_overdue(due_date, now)
    return DebtSnapshot(
        remaining_amount_cents=remaining,
        status=status.value,
        months_overdue=months,
        interest_amount_cents=calculate_interest(remaining, interest_rate, months),
    )
