"""
Shared pieces of the daily reminder sweeps.
Each sweep loads candidates, computes its work items with a pure function,
then dispatches them one at a time.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from subly.core.clock import Clock, SystemClock
from subly.database import SessionLocal
from subly.repositories.subscriptions import SubscriptionRepository
from subly.services.reminder_registry import ReminderRegistry

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    name: str
    scanned: int = 0
    eligible: int = 0
    succeeded: int = 0
    failed: int = 0
    error: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ReminderWorkItem:
    subscription: Any
    user: Any
    days_remaining: int
    key: str


class ReminderSweep(ABC):
    """Base class for the trial and payment reminder sweeps."""

    name = "reminders"

    def __init__(
        self,
        registry: ReminderRegistry,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Clock | None = None,
    ):
        self.registry = registry
        self.session_factory = session_factory
        self.clock = clock or SystemClock()

    @abstractmethod
    def load_candidates(self, repository: SubscriptionRepository) -> list[Any]:
        """Query the subscriptions this sweep looks at."""

    @abstractmethod
    def collect(self, subscriptions: Iterable[Any], today: datetime) -> list[ReminderWorkItem]:
        """Pick the subscriptions that need a reminder today."""

    @abstractmethod
    async def send(self, item: ReminderWorkItem) -> bool:
        """Deliver one reminder; True when it reached the user."""

    async def run_daily(self) -> SweepReport:
        """Scheduled entry point: forget yesterday's sends, then sweep."""
        self.registry.reset_all()
        return await self.check()

    async def check(self) -> SweepReport:
        report = SweepReport(name=self.name)
        logger.info("Checking for %s...", self.name.replace("_", " "))
        db = self.session_factory()
        try:
            try:
                candidates = self.load_candidates(SubscriptionRepository(db))
            except SQLAlchemyError as exc:
                logger.exception("Could not load candidates for %s: %s", self.name, exc)
                report.error = str(exc)
                return report

            report.scanned = len(candidates)
            items = self.collect(candidates, self.clock.now())
            report.eligible = len(items)

            for item in items:
                try:
                    delivered = await self.send(item)
                except Exception as exc:
                    logger.exception(
                        "Sending %s reminder failed for subscription %s: %s",
                        self.name,
                        item.subscription.id,
                        exc,
                    )
                    report.failed += 1
                    continue

                if delivered:
                    self.registry.mark_sent(item.key)
                    report.succeeded += 1
                else:
                    report.failed += 1
        finally:
            db.close()

        logger.info(
            "%s sweep complete: %s sent, %s failed, %s scanned",
            self.name,
            report.succeeded,
            report.failed,
            report.scanned,
        )
        return report
