"""
Wiring of the three daily sweeps onto the job scheduler.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from subly.config import Settings, settings as default_settings
from subly.core.clock import Clock, SystemClock
from subly.database import SessionLocal
from subly.integrations.email import EmailService
from subly.integrations.push import PushService
from subly.services.billing_rollover import BillingRolloverService
from subly.services.job_scheduler import JobScheduler
from subly.services.payment_reminders import PaymentReminderService
from subly.services.reminder_registry import ReminderRegistry
from subly.services.trial_reminders import TrialReminderService

logger = logging.getLogger(__name__)

ROLLOVER_JOB = "subscription_rollover"
TRIAL_REMINDER_JOB = "trial_reminders"
PAYMENT_REMINDER_JOB = "payment_reminders"


def build_services(
    config: Settings = default_settings,
    session_factory: Callable[[], Session] = SessionLocal,
    clock: Optional[Clock] = None,
    email_service: Optional[EmailService] = None,
    push_service: Optional[PushService] = None,
) -> dict:
    clock = clock or SystemClock(config.timezone)
    return {
        ROLLOVER_JOB: BillingRolloverService(session_factory=session_factory, clock=clock),
        TRIAL_REMINDER_JOB: TrialReminderService(
            registry=ReminderRegistry(),
            email_service=email_service,
            session_factory=session_factory,
            clock=clock,
            thresholds=config.trial_reminder_days,
        ),
        PAYMENT_REMINDER_JOB: PaymentReminderService(
            registry=ReminderRegistry(),
            push_service=push_service or PushService(session_factory=session_factory),
            session_factory=session_factory,
            clock=clock,
            default_days=config.default_payment_reminder_days,
        ),
    }


def build_scheduler(
    config: Settings = default_settings,
    session_factory: Callable[[], Session] = SessionLocal,
    clock: Optional[Clock] = None,
    **collaborators,
) -> JobScheduler:
    """Create a scheduler with the rollover and both reminder sweeps registered."""
    clock = clock or SystemClock(config.timezone)
    services = build_services(config, session_factory=session_factory, clock=clock, **collaborators)
    scheduler = JobScheduler(clock=clock, poll_seconds=config.scheduler_poll_seconds)

    rollover = services[ROLLOVER_JOB]
    trials = services[TRIAL_REMINDER_JOB]
    payments = services[PAYMENT_REMINDER_JOB]
    scheduler.add_job(ROLLOVER_JOB, config.rollover_cron, rollover.run)
    scheduler.add_job(TRIAL_REMINDER_JOB, config.trial_reminder_cron, trials.run_daily)
    scheduler.add_job(PAYMENT_REMINDER_JOB, config.payment_reminder_cron, payments.run_daily)

    if config.is_development:
        logger.info("Development mode: reminder checks will also run shortly after start-up")
        scheduler.call_later(config.startup_check_delay_seconds, TRIAL_REMINDER_JOB, trials.check)
        scheduler.call_later(config.startup_check_delay_seconds, PAYMENT_REMINDER_JOB, payments.check)

    return scheduler
