from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from subly.config import settings
from subly.core.exceptions import ConfigurationError, IntegrationError
from subly.core.logger import get_logger
from subly.templates.notification_templates import (
    format_amount,
    render_trial_reminder_email,
    trial_reminder_subject,
)

logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailService:
    """Transactional email via the Resend HTTP API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        frontend_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        configured_key = settings.resend_api_key.get_secret_value() if settings.resend_api_key else None
        self.api_key = api_key or configured_key
        self.from_email = from_email or settings.email_from
        self.from_name = from_name or settings.email_from_name
        self.frontend_url = frontend_url or settings.frontend_url
        self.timeout = timeout or settings.email_timeout_seconds
        self._transport = transport

    async def send_email(
        self,
        to: str,
        subject: str,
        html_content: str,
        from_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not self.api_key:
            raise ConfigurationError("RESEND_API_KEY is not configured")
        payload = {
            "from": f"{from_name or self.from_name} <{self.from_email}>",
            "to": [to],
            "subject": subject,
            "html": html_content,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise IntegrationError(f"Resend request failed: {exc}") from exc
        try:
            message_id = response.json().get("id") if response.content else None
        except ValueError:
            logger.warning("Resend returned a non-JSON body for %s", to)
            message_id = None
        return {"status": "sent", "message_id": message_id, "to": to}

    async def send_trial_reminder(self, user: Any, subscription: Any, days_left: int) -> Dict[str, Any]:
        """Email the owner that a trial ends in ``days_left`` days. Never raises."""
        html_content = render_trial_reminder_email(
            username=user.username,
            subscription_name=subscription.name,
            days_left=days_left,
            trial_end_date=subscription.trial_end_date,
            amount=format_amount(subscription.my_real_cost, getattr(user, "currency", None)),
            billing_cycle=subscription.billing_cycle,
            frontend_url=self.frontend_url,
        )
        try:
            result = await self.send_email(
                to=user.email,
                subject=trial_reminder_subject(subscription.name, days_left),
                html_content=html_content,
                from_name=f"{self.from_name} Trial Reminder",
            )
        except (ConfigurationError, IntegrationError) as exc:
            logger.error("Error sending trial reminder email for %s: %s", subscription.name, exc)
            return {"success": False, "error": str(exc)}

        logger.info(
            "Trial reminder email sent: %s (%s, %s days)",
            result["message_id"],
            subscription.name,
            days_left,
        )
        return {"success": True, "message_id": result["message_id"]}
