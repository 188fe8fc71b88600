"""
Daily rollover of subscription renewal dates that have already passed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from subly.core.clock import Clock, SystemClock
from subly.core.exceptions import ValidationError
from subly.database import SessionLocal
from subly.repositories.subscriptions import SubscriptionRepository
from subly.services.sweeps import SweepReport
from subly.utils.dates import MONTHLY, advance_billing_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RolloverPlan:
    previous_date: datetime
    next_date: datetime
    periods: int


def plan_rollover(next_billing_date: datetime, billing_cycle: str, now: datetime) -> RolloverPlan:
    """Step whole billing periods forward from ``next_billing_date`` until strictly after ``now``.

    Every candidate is measured from the stored date, so a day-of-month that
    gets clamped in a short month is restored in the following months.
    """
    periods = 0
    candidate = next_billing_date
    while candidate <= now:
        periods += 1
        candidate = advance_billing_date(next_billing_date, billing_cycle, periods)
    return RolloverPlan(previous_date=next_billing_date, next_date=candidate, periods=periods)


class BillingRolloverService:
    """Moves ``next_billing_date`` of overdue active subscriptions to their next occurrence."""

    name = "subscription_rollover"

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Clock | None = None,
    ):
        self.session_factory = session_factory
        self.clock = clock or SystemClock()

    async def run(self) -> SweepReport:
        report = SweepReport(name=self.name)
        logger.info("Running subscription renewal date update...")
        now = self.clock.now()
        db = self.session_factory()
        try:
            repository = SubscriptionRepository(db)
            try:
                overdue = repository.find_overdue(now)
            except SQLAlchemyError as exc:
                logger.exception("Could not load overdue subscriptions: %s", exc)
                report.error = str(exc)
                return report

            report.scanned = report.eligible = len(overdue)
            logger.info("Found %s subscriptions to update", len(overdue))

            for subscription in overdue:
                try:
                    plan = plan_rollover(subscription.next_billing_date, subscription.billing_cycle, now)
                    repository.update_next_billing_date(subscription, plan.next_date)
                except ValidationError as exc:
                    logger.error("Skipping subscription %s: %s", subscription.id, exc)
                    report.failed += 1
                    continue
                except SQLAlchemyError as exc:
                    db.rollback()
                    logger.exception("Could not update subscription %s: %s", subscription.id, exc)
                    report.failed += 1
                    continue
                except Exception as exc:
                    db.rollback()
                    logger.exception("Unexpected error rolling over subscription %s: %s", subscription.id, exc)
                    report.failed += 1
                    continue

                report.succeeded += 1
                logger.info(
                    "Updated %s: +%s %s -> %s",
                    subscription.name,
                    plan.periods,
                    "month(s)" if subscription.billing_cycle == MONTHLY else "year(s)",
                    plan.next_date.date().isoformat(),
                )
        finally:
            db.close()

        logger.info(
            "Subscription renewal update complete: %s updated, %s failed",
            report.succeeded,
            report.failed,
        )
        return report
