"""
Upcoming payment reminders, sent as push notifications at each user's lead time.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable

from sqlalchemy.orm import Session

from subly.core.clock import Clock
from subly.database import SessionLocal
from subly.integrations.push import PushService
from subly.repositories.subscriptions import SubscriptionRepository
from subly.services.reminder_registry import ReminderRegistry
from subly.services.sweeps import ReminderSweep, ReminderWorkItem
from subly.utils.dates import days_until

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_REMINDER_DAYS = 3


def collect_payment_reminders(
    subscriptions: Iterable[Any],
    today: datetime,
    registry: ReminderRegistry,
    default_days: int = DEFAULT_PAYMENT_REMINDER_DAYS,
) -> list[ReminderWorkItem]:
    """Subscriptions billed exactly the owner's lead time from ``today``.

    Only the exact day matches; a day the sweep does not run is not caught up.
    """
    items: list[ReminderWorkItem] = []
    for subscription in subscriptions:
        user = subscription.user
        if user is None or getattr(user, "is_deleted", False):
            continue
        if not user.push_notifications_enabled:
            continue
        if subscription.next_billing_date is None:
            continue

        days_left = days_until(subscription.next_billing_date, today)
        lead_time = user.payment_reminder_days or default_days
        if days_left != lead_time:
            continue

        key = registry.key(subscription.id, days_left)
        if registry.has_sent(key):
            continue
        items.append(ReminderWorkItem(subscription=subscription, user=user, days_remaining=days_left, key=key))
    return items


class PaymentReminderService(ReminderSweep):
    name = "payment_reminders"

    def __init__(
        self,
        registry: ReminderRegistry,
        push_service: PushService | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Clock | None = None,
        default_days: int = DEFAULT_PAYMENT_REMINDER_DAYS,
    ):
        super().__init__(registry=registry, session_factory=session_factory, clock=clock)
        self.push_service = push_service or PushService(session_factory=session_factory)
        self.default_days = default_days

    def load_candidates(self, repository: SubscriptionRepository) -> list[Any]:
        return repository.find_active_paid()

    def collect(self, subscriptions: Iterable[Any], today: datetime) -> list[ReminderWorkItem]:
        return collect_payment_reminders(subscriptions, today, self.registry, self.default_days)

    async def send(self, item: ReminderWorkItem) -> bool:
        logger.info(
            "Sending payment reminder: %s (%s days until payment)",
            item.subscription.name,
            item.days_remaining,
        )
        result = await self.push_service.send_payment_reminder(item.user, item.subscription, item.days_remaining)
        if result.failure_count:
            logger.warning(
                "Payment reminder for %s reached %s of %s devices",
                item.subscription.name,
                result.success_count,
                result.success_count + result.failure_count,
            )
        return result.delivered
