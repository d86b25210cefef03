"""Calendar helpers for monthly billing.

All day counts are inclusive of both ends. Money is ``Decimal`` rounded
half-up to two places.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from backend.config import settings

CENT = Decimal("0.01")


def month_range(month: int, year: int) -> tuple[date, date]:
    """First and last calendar day of *month*/*year*."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def previous_month(month: int, year: int) -> tuple[int, int]:
    if month == 1:
        return 12, year - 1
    return month - 1, year


def overlap_days(start: date, end: date, window_start: date, window_end: date) -> int:
    """Days shared by [start, end] and [window_start, window_end]; 0 if disjoint."""
    lo = max(start, window_start)
    hi = min(end, window_end)
    if lo > hi:
        return 0
    return (hi - lo).days + 1


def deployed_days(
    start_date: Optional[date],
    end_date: Optional[date],
    month: int,
    year: int,
) -> int:
    """Days a posting covers within the month. An open end runs to month end."""
    first, last = month_range(month, year)
    return overlap_days(start_date or first, end_date or last, first, last)


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def per_day_rate(monthly_rate: Decimal, working_days: Optional[int] = None) -> Decimal:
    working_days = working_days or settings.BILLING_WORKING_DAYS_PER_MONTH
    if working_days <= 0:
        return Decimal("0")
    return Decimal(monthly_rate) / Decimal(working_days)


def prorated_amount(
    monthly_rate: Decimal,
    days: int,
    working_days: Optional[int] = None,
) -> Decimal:
    """``monthly_rate / working_days * days``, rounded to the cent."""
    return quantize(per_day_rate(monthly_rate, working_days) * days)


def due_date(invoice_date: date, days: Optional[int] = None) -> date:
    if days is None:
        days = settings.INVOICE_DUE_DAYS
    return invoice_date + timedelta(days=days)
