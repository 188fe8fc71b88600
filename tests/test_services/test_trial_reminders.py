from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from subly.services.reminder_registry import ReminderRegistry
from subly.services.trial_reminders import TrialReminderService, collect_trial_reminders

TODAY = datetime(2024, 4, 20, 9, 0)


class FakeEmailService:
    def __init__(self, success=True, fail_for=()):
        self.success = success
        self.fail_for = set(fail_for)
        self.calls = []

    async def send_trial_reminder(self, user, subscription, days_left):
        if subscription.name in self.fail_for:
            raise RuntimeError('smtp exploded')
        self.calls.append((user.email, subscription.name, days_left))
        return {'success': self.success}


def trial(name, days_ahead, user=None, **overrides):
    values = {
        'id': name,
        'name': name,
        'trial_end_date': TODAY.replace(hour=23) + timedelta(days=days_ahead) if days_ahead is not None else None,
        'user': user if user is not None else owner(),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def owner(**overrides):
    values = {'email': 'alex@example.com', 'email_notifications': True, 'is_deleted': False}
    values.update(overrides)
    return SimpleNamespace(**values)


def test_collect_only_matches_exact_thresholds():
    subscriptions = [trial(f'in-{days}', days) for days in (-1, 0, 1, 2, 3, 4, 7)]

    items = collect_trial_reminders(subscriptions, TODAY, ReminderRegistry())

    assert sorted((item.subscription.name, item.days_remaining) for item in items) == [('in-1', 1), ('in-3', 3)]
    assert {item.key for item in items} == {'in-1:1', 'in-3:3'}


def test_collect_skips_ineligible_owners():
    subscriptions = [
        trial('no-owner', 3, user=None),
        trial('no-email', 3, user=owner(email='')),
        trial('opted-out', 3, user=owner(email_notifications=False)),
        trial('deleted', 3, user=owner(is_deleted=True)),
        trial('no-end-date', None),
        trial('ok', 3),
    ]
    subscriptions[0].user = None

    items = collect_trial_reminders(subscriptions, TODAY, ReminderRegistry())

    assert [item.subscription.name for item in items] == ['ok']


def test_collect_skips_already_sent_keys():
    registry = ReminderRegistry()
    registry.mark_sent(registry.key('sent', 3))

    items = collect_trial_reminders([trial('sent', 3), trial('sent', 1)], TODAY, registry)

    assert [item.days_remaining for item in items] == [1]


def test_collect_with_custom_thresholds():
    items = collect_trial_reminders([trial('a', 7), trial('b', 3)], TODAY, ReminderRegistry(), thresholds=(7,))
    assert [item.subscription.name for item in items] == ['a']


@pytest.mark.asyncio
async def test_trial_reminder_sent_once_per_day(session_factory, clock, make_user, make_subscription):
    user = make_user(email='sam@example.com')
    make_subscription(user, name='Disney+', is_trial=True, trial_end_date=clock.now() + timedelta(days=3))
    email = FakeEmailService()
    service = TrialReminderService(
        registry=ReminderRegistry(),
        email_service=email,
        session_factory=session_factory,
        clock=clock,
    )

    first = await service.check()
    second = await service.check()

    assert email.calls == [('sam@example.com', 'Disney+', 3)]
    assert first.succeeded == 1
    assert second.eligible == 0
    assert second.succeeded == 0


@pytest.mark.asyncio
async def test_daily_run_resets_registry(session_factory, clock, make_user, make_subscription):
    user = make_user()
    make_subscription(user, name='Disney+', is_trial=True, trial_end_date=clock.now() + timedelta(days=1))
    email = FakeEmailService()
    service = TrialReminderService(
        registry=ReminderRegistry(),
        email_service=email,
        session_factory=session_factory,
        clock=clock,
    )

    await service.run_daily()
    await service.run_daily()

    assert len(email.calls) == 2


@pytest.mark.asyncio
async def test_failed_send_is_not_marked(session_factory, clock, make_user, make_subscription):
    user = make_user()
    make_subscription(user, name='Disney+', is_trial=True, trial_end_date=clock.now() + timedelta(days=3))
    registry = ReminderRegistry()
    service = TrialReminderService(
        registry=registry,
        email_service=FakeEmailService(success=False),
        session_factory=session_factory,
        clock=clock,
    )

    report = await service.check()

    assert report.failed == 1
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_send_error_does_not_block_other_trials(session_factory, clock, make_user, make_subscription):
    user = make_user()
    make_subscription(user, name='Boom', is_trial=True, trial_end_date=clock.now() + timedelta(days=3))
    make_subscription(user, name='Fine', is_trial=True, trial_end_date=clock.now() + timedelta(days=3))
    email = FakeEmailService(fail_for={'Boom'})
    service = TrialReminderService(
        registry=ReminderRegistry(),
        email_service=email,
        session_factory=session_factory,
        clock=clock,
    )

    report = await service.check()

    assert [call[1] for call in email.calls] == ['Fine']
    assert report.succeeded == 1
    assert report.failed == 1


@pytest.mark.asyncio
async def test_non_trial_and_opted_out_users_are_ignored(session_factory, clock, make_user, make_subscription):
    opted_out = make_user(username='quiet', email_notifications=False)
    regular = make_user(username='regular')
    in_three_days = clock.now() + timedelta(days=3)
    make_subscription(opted_out, name='Quiet trial', is_trial=True, trial_end_date=in_three_days)
    make_subscription(regular, name='Paid plan', is_trial=False, trial_end_date=in_three_days)
    make_subscription(regular, name='Cancelled trial', is_trial=True, trial_end_date=in_three_days, is_active=False)
    email = FakeEmailService()

    report = await TrialReminderService(
        registry=ReminderRegistry(),
        email_service=email,
        session_factory=session_factory,
        clock=clock,
    ).check()

    assert email.calls == []
    assert report.scanned == 1
