import os
import sys
import uuid
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('TZ', 'UTC')
os.environ.setdefault('RESEND_API_KEY', 're_test')
os.environ.setdefault('VAPID_SUBJECT', 'mailto:admin@subly.test')
os.environ.setdefault('VAPID_PRIVATE_KEY', 'test-private-key')
from subly.models import Base, PushSubscription, Subscription, User


class FixedClock:
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 4, 20, 9, 0))


@pytest.fixture
def session_factory():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make(**overrides) -> User:
        values = {
            'username': f'user-{uuid.uuid4().hex[:8]}',
            'email': 'alex@example.com',
            'email_notifications': True,
            'push_notifications_enabled': True,
            'payment_reminder_days': 3,
            'language': 'en',
            'currency': 'EUR',
        }
        values.update(overrides)
        user = User(**values)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_subscription(db):
    def _make(user: User, **overrides) -> Subscription:
        values = {
            'name': 'Netflix',
            'amount': Decimal('15.99'),
            'billing_cycle': 'monthly',
            'next_billing_date': datetime(2024, 5, 15, 10, 0),
            'is_active': True,
            'is_trial': False,
        }
        values.update(overrides)
        subscription = Subscription(user_id=user.id, **values)
        db.add(subscription)
        db.commit()
        return subscription

    return _make


@pytest.fixture
def make_endpoint(db):
    def _make(user: User, **overrides) -> PushSubscription:
        values = {
            'endpoint': f'https://push.example.com/{uuid.uuid4().hex}',
            'p256dh': 'p256dh-key',
            'auth': 'auth-secret',
            'is_active': True,
        }
        values.update(overrides)
        endpoint = PushSubscription(user_id=user.id, **values)
        db.add(endpoint)
        db.commit()
        return endpoint

    return _make
