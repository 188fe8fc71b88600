"""
Trial ending reminders, sent by email at fixed lead times.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Sequence

from sqlalchemy.orm import Session

from subly.core.clock import Clock
from subly.database import SessionLocal
from subly.integrations.email import EmailService
from subly.repositories.subscriptions import SubscriptionRepository
from subly.services.reminder_registry import ReminderRegistry
from subly.services.sweeps import ReminderSweep, ReminderWorkItem
from subly.utils.dates import days_until

logger = logging.getLogger(__name__)

TRIAL_REMINDER_DAYS = (3, 1)


def collect_trial_reminders(
    subscriptions: Iterable[Any],
    today: datetime,
    registry: ReminderRegistry,
    thresholds: Sequence[int] = TRIAL_REMINDER_DAYS,
) -> list[ReminderWorkItem]:
    """Trials whose end is exactly one of ``thresholds`` days away and not yet reminded today."""
    items: list[ReminderWorkItem] = []
    for subscription in subscriptions:
        user = subscription.user
        if user is None or getattr(user, "is_deleted", False):
            continue
        if not user.email or not user.email_notifications:
            continue
        if subscription.trial_end_date is None:
            continue

        days_left = days_until(subscription.trial_end_date, today)
        if days_left <= 0 or days_left not in thresholds:
            continue

        key = registry.key(subscription.id, days_left)
        if registry.has_sent(key):
            continue
        items.append(ReminderWorkItem(subscription=subscription, user=user, days_remaining=days_left, key=key))
    return items


class TrialReminderService(ReminderSweep):
    name = "trial_reminders"

    def __init__(
        self,
        registry: ReminderRegistry,
        email_service: EmailService | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Clock | None = None,
        thresholds: Sequence[int] = TRIAL_REMINDER_DAYS,
    ):
        super().__init__(registry=registry, session_factory=session_factory, clock=clock)
        self.email_service = email_service or EmailService()
        self.thresholds = tuple(thresholds)

    def load_candidates(self, repository: SubscriptionRepository) -> list[Any]:
        return repository.find_active_trials()

    def collect(self, subscriptions: Iterable[Any], today: datetime) -> list[ReminderWorkItem]:
        return collect_trial_reminders(subscriptions, today, self.registry, self.thresholds)

    async def send(self, item: ReminderWorkItem) -> bool:
        logger.info(
            "Sending trial reminder: %s (%s days left) to %s",
            item.subscription.name,
            item.days_remaining,
            item.user.email,
        )
        result = await self.email_service.send_trial_reminder(item.user, item.subscription, item.days_remaining)
        return bool(result.get("success"))
