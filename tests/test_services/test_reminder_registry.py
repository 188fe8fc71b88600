import uuid

from subly.services.reminder_registry import ReminderRegistry


def test_key_combines_subscription_and_days():
    subscription_id = uuid.UUID('12345678-1234-5678-1234-567812345678')
    assert ReminderRegistry.key(subscription_id, 3) == '12345678-1234-5678-1234-567812345678:3'


def test_mark_and_check():
    registry = ReminderRegistry()
    key = registry.key('sub-1', 3)

    assert not registry.has_sent(key)
    assert registry.mark_sent(key)
    assert registry.has_sent(key)
    assert not registry.has_sent(registry.key('sub-1', 1))


def test_mark_sent_twice_reports_duplicate():
    registry = ReminderRegistry()
    assert registry.mark_sent('sub-1:3')
    assert not registry.mark_sent('sub-1:3')
    assert len(registry) == 1


def test_reset_all_forgets_every_key():
    registry = ReminderRegistry()
    keys = [registry.key(f'sub-{i}', days) for i in range(5) for days in (1, 3)]
    for key in keys:
        registry.mark_sent(key)

    registry.reset_all()

    assert len(registry) == 0
    assert not any(registry.has_sent(key) for key in keys)


def test_registries_are_independent():
    first = ReminderRegistry()
    second = ReminderRegistry()
    first.mark_sent('sub-1:3')
    assert not second.has_sent('sub-1:3')
