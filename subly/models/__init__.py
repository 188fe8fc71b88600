"""
SQLAlchemy models for Subly.
"""
from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import DECIMAL, Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from subly.utils.dates import ANNUAL

Base = declarative_base()


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("payment_reminder_days IN (1, 3, 7)", name="ck_users_payment_reminder_days"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(Text, nullable=False, unique=True)
    email = Column(Text)
    email_verified = Column(Boolean, default=False)
    email_notifications = Column(Boolean, default=True, nullable=False)
    push_notifications_enabled = Column(Boolean, default=True, nullable=False)
    payment_reminder_days = Column(Integer, default=3, nullable=False)
    language = Column(Text, default="en")
    currency = Column(Text, default="EUR")
    role = Column(Text, default="user")
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    subscriptions = relationship("Subscription", back_populates="user", cascade="all, delete-orphan")
    push_subscriptions = relationship("PushSubscription", back_populates="user", cascade="all, delete-orphan")


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    amount = Column(DECIMAL(10, 2), nullable=False, default=0)
    billing_cycle = Column(Text, nullable=False)
    category = Column(Text, default="Other")
    start_date = Column(DateTime, server_default=func.now())
    next_billing_date = Column(DateTime, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_trial = Column(Boolean, default=False, nullable=False)
    trial_end_date = Column(DateTime)
    is_shared = Column(Boolean, default=False, nullable=False)
    total_people = Column(Integer, default=2)
    people_who_paid = Column(Integer, default=1)
    notes = Column(Text)
    url = Column(Text)
    icon_url = Column(Text)
    payment_method = Column(Text)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="subscriptions")

    @property
    def my_real_cost(self) -> Decimal:
        """Share of the amount the owner pays; the full amount when not shared."""
        amount = Decimal(self.amount or 0)
        if not self.is_shared or not self.total_people:
            return amount
        return amount / self.total_people * (self.people_who_paid or 0)

    @property
    def monthly_cost(self) -> Decimal:
        if self.billing_cycle == ANNUAL:
            return self.my_real_cost / 12
        return self.my_real_cost


class PushSubscription(Base):
    """A browser/device Web Push endpoint registered by a user."""

    __tablename__ = "push_subscriptions"
    __table_args__ = (UniqueConstraint("user_id", "endpoint", name="uq_push_subscriptions_user_endpoint"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    endpoint = Column(Text, nullable=False)
    p256dh = Column(Text, nullable=False)
    auth = Column(Text, nullable=False)
    user_agent = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="push_subscriptions")

    def subscription_info(self) -> dict:
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}
