"""
Calendar helpers for billing dates.

Month and year steps use relativedelta, which clamps to the last valid day of
the target month (Jan 31 + 1 month -> Feb 28/29, Feb 29 + 1 year -> Feb 28).
"""
from __future__ import annotations

from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from subly.core.exceptions import UnsupportedBillingCycleError

MONTHLY = "monthly"
ANNUAL = "annual"
BILLING_CYCLES = (MONTHLY, ANNUAL)


def add_months(value: datetime, months: int) -> datetime:
    return value + relativedelta(months=months)


def add_years(value: datetime, years: int) -> datetime:
    return value + relativedelta(years=years)


def advance_billing_date(value: datetime, billing_cycle: str, periods: int = 1) -> datetime:
    """Return ``value`` moved forward by ``periods`` whole billing periods."""
    if billing_cycle == MONTHLY:
        return add_months(value, periods)
    if billing_cycle == ANNUAL:
        return add_years(value, periods)
    raise UnsupportedBillingCycleError(f"Unsupported billing cycle: {billing_cycle!r}")


def start_of_day(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime(value.year, value.month, value.day)


def days_until(target: datetime | date, today: datetime | date) -> int:
    """Whole calendar days from ``today`` to ``target``, ignoring time of day."""
    return (start_of_day(target) - start_of_day(today)).days
