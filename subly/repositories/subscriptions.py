"""
Queries and writes used by the background sweeps.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from subly.models import PushSubscription, Subscription


class SubscriptionRepository:
    """Read the subscriptions each sweep works on, with their owners loaded."""

    def __init__(self, db: Session):
        self.db = db

    def find_overdue(self, now: datetime) -> list[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(
                Subscription.is_active.is_(True),
                Subscription.next_billing_date < now,
            )
            .all()
        )

    def find_active_trials(self) -> list[Subscription]:
        return (
            self.db.query(Subscription)
            .options(joinedload(Subscription.user))
            .filter(
                Subscription.is_active.is_(True),
                Subscription.is_trial.is_(True),
                Subscription.trial_end_date.isnot(None),
            )
            .all()
        )

    def find_active_paid(self) -> list[Subscription]:
        return (
            self.db.query(Subscription)
            .options(joinedload(Subscription.user))
            .filter(
                Subscription.is_active.is_(True),
                Subscription.is_trial.is_(False),
            )
            .all()
        )

    def update_next_billing_date(self, subscription: Subscription, next_billing_date: datetime) -> None:
        subscription.next_billing_date = next_billing_date
        self.db.commit()


class PushEndpointRepository:
    def __init__(self, db: Session):
        self.db = db

    def active_for_user(self, user_id: uuid.UUID) -> list[PushSubscription]:
        return (
            self.db.query(PushSubscription)
            .filter(
                PushSubscription.user_id == user_id,
                PushSubscription.is_active.is_(True),
            )
            .all()
        )

    def deactivate(self, endpoint: PushSubscription) -> None:
        endpoint.is_active = False
        self.db.commit()
