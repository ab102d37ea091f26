"""Calendar-month windows for financial periods."""
from datetime import datetime
from typing import Tuple

from bizledger.core.exceptions import LedgerValidationError


def validate_year_month(year: int, month: int) -> None:
    if not 2020 <= year <= 2100:
        raise LedgerValidationError(f"Year out of range: {year}")
    if not 1 <= month <= 12:
        raise LedgerValidationError(f"Month out of range: {month}")


def month_window(year: int, month: int) -> Tuple[datetime, datetime]:
    """Half-open [start, end) window covering the month, naive UTC."""
    validate_year_month(year, month)
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def is_future_period(year: int, month: int, now: datetime) -> bool:
    return (year, month) > (now.year, now.month)
