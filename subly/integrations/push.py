from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pywebpush import WebPushException, webpush
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from subly.config import settings
from subly.core.logger import get_logger
from subly.database import SessionLocal
from subly.repositories.subscriptions import PushEndpointRepository
from subly.templates.notification_templates import format_amount, get_translation

logger = get_logger(__name__)

# Push services answer 404/410 for endpoints that will never accept messages again.
EXPIRED_ENDPOINT_STATUSES = {404, 410}


@dataclass
class PushDeliveryResult:
    success_count: int = 0
    failure_count: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.success_count > 0


class PushService:
    """Web Push notifications to every active device of a user."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        vapid_subject: Optional[str] = None,
        vapid_private_key: Optional[str] = None,
        frontend_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        configured_key = settings.vapid_private_key.get_secret_value() if settings.vapid_private_key else None
        self.session_factory = session_factory
        self.vapid_subject = (vapid_subject or settings.vapid_subject or "").strip()
        self.vapid_private_key = (vapid_private_key or configured_key or "").strip()
        self.frontend_url = frontend_url or settings.frontend_url
        self.timeout = timeout or settings.push_timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.vapid_subject and self.vapid_private_key)

    async def send_to_user(self, user_id: Any, payload: Dict[str, Any]) -> PushDeliveryResult:
        result = PushDeliveryResult()
        if not self.is_configured:
            result.errors.append("Push notification service not configured")
            return result

        db = self.session_factory()
        try:
            repository = PushEndpointRepository(db)
            endpoints = repository.active_for_user(user_id)
            if not endpoints:
                result.errors.append("No active push subscriptions found")
                return result

            data = json.dumps(payload, default=str)
            for endpoint in endpoints:
                try:
                    await asyncio.to_thread(
                        webpush,
                        subscription_info=endpoint.subscription_info(),
                        data=data,
                        vapid_private_key=self.vapid_private_key,
                        vapid_claims={"sub": self.vapid_subject},
                        timeout=self.timeout,
                    )
                    result.success_count += 1
                except WebPushException as exc:
                    result.failure_count += 1
                    status = exc.response.status_code if exc.response is not None else None
                    if status in EXPIRED_ENDPOINT_STATUSES:
                        self._deactivate(repository, endpoint)
                        logger.info("Deactivated expired push endpoint for user %s", user_id)
                    else:
                        logger.error("Failed to send push to user %s: %s", user_id, exc)
                        result.errors.append(str(exc))
                except Exception as exc:
                    # Transport and key errors leave the endpoint active.
                    result.failure_count += 1
                    logger.error("Failed to send push to user %s: %s", user_id, exc)
                    result.errors.append(str(exc))
        finally:
            db.close()
        return result

    @staticmethod
    def _deactivate(repository: PushEndpointRepository, endpoint: Any) -> None:
        try:
            repository.deactivate(endpoint)
        except SQLAlchemyError as exc:
            repository.db.rollback()
            logger.error("Could not deactivate push endpoint %s: %s", endpoint.id, exc)

    def _payload(self, subscription: Any, kind: str, text: Dict[str, str], **data: Any) -> Dict[str, Any]:
        default_icon = f"{self.frontend_url}/icon-192.png"
        return {
            "title": text["title"],
            "body": text["body"],
            "icon": subscription.icon_url or default_icon,
            "badge": default_icon,
            "tag": f"{kind}-{subscription.id}",
            "data": {
                "type": kind,
                "subscriptionId": str(subscription.id),
                "subscriptionName": subscription.name,
                "url": "/",
                **data,
            },
        }

    async def send_payment_reminder(self, user: Any, subscription: Any, days_until: int) -> PushDeliveryResult:
        amount = subscription.my_real_cost
        text = get_translation(
            user.language,
            "upcoming_payment",
            name=subscription.name,
            days=days_until,
            amount=format_amount(amount, user.currency),
        )
        payload = self._payload(subscription, "payment", text, amount=float(amount), daysUntil=days_until)
        return await self.send_to_user(user.id, payload)

    async def send_trial_ending(self, user: Any, subscription: Any, days_left: int) -> PushDeliveryResult:
        text = get_translation(user.language, "trial_ending_soon", name=subscription.name, days=days_left)
        payload = self._payload(subscription, "trial", text, daysLeft=days_left)
        return await self.send_to_user(user.id, payload)
