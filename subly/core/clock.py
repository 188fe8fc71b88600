"""
Time source used by the sweeps.
All persisted datetimes are naive wall-clock values in the application timezone,
so the clock hands out "now" in that same frame.
"""
from __future__ import annotations

from datetime import datetime
from typing import Protocol
from zoneinfo import ZoneInfo

from subly.config import settings


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in a fixed IANA timezone (the configured one by default), returned without tzinfo."""

    def __init__(self, timezone: str | None = None):
        self.timezone = ZoneInfo(timezone or settings.timezone)

    def now(self) -> datetime:
        return datetime.now(self.timezone).replace(tzinfo=None)
