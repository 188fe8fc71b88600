from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from html import escape

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$"}

TRANSLATIONS = {
    "en": {
        "trial_ending_soon": {
            "title": "Trial Ending Soon",
            "body": "Your {name} trial ends in {days} day{plural}",
        },
        "upcoming_payment": {
            "title": "Upcoming Payment",
            "body": "{name} renews in {days} day{plural} - {amount}",
        },
    },
    "fr": {
        "trial_ending_soon": {
            "title": "Votre période d'essai arrive à expiration",
            "body": "La période d'essai de {name} se termine dans {days} jour{plural}",
        },
        "upcoming_payment": {
            "title": "Paiement à venir",
            "body": "{name} se renouvelle dans {days} jour{plural} - {amount}",
        },
    },
}

TRIAL_REMINDER_EMAIL = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Trial Ending Soon - Subly</title>
</head>
<body style="font-family: 'Courier New', Courier, monospace; background: #0a0e14; padding: 40px 20px; color: #00ff41;">
  <div style="max-width: 600px; margin: 0 auto; background: #1a1f26; border: 2px solid {color}; border-radius: 8px;">
    <div style="padding: 30px; text-align: center; border-bottom: 2px solid {color};">
      <div style="font-size: 48px; font-weight: bold; letter-spacing: 8px;">SUBLY</div>
      <div style="font-size: 14px;">&gt; trial_reminder.sh</div>
    </div>
    <div style="padding: 40px 30px;">
      <p style="font-size: 18px; margin-bottom: 20px;">Hello {username},</p>
      <p style="font-size: 14px; color: #a8b3c1; line-height: 1.8;">
        Your free trial of <strong style="color: #00ff41;">{name}</strong> is about to end.
        Cancel before the end date if you do not want to be charged.
      </p>
      <div style="text-align: center; padding: 20px; border: 2px solid {color}; border-radius: 8px; margin: 20px 0;">
        <div style="font-size: 48px; font-weight: bold; color: {color};">{days}</div>
        <div style="font-size: 14px; color: {color}; text-transform: uppercase; letter-spacing: 2px;">{days_label}</div>
      </div>
      <table style="width: 100%; font-size: 14px; color: #a8b3c1;">
        <tr><td>Subscription</td><td style="text-align: right; color: #00ff41;">{name}</td></tr>
        <tr><td>Trial ends</td><td style="text-align: right; color: #00ff41;">{trial_end}</td></tr>
        <tr><td>Price after trial</td><td style="text-align: right; color: #00ff41;">{amount} / {cycle}</td></tr>
      </table>
      <div style="text-align: center; margin: 30px 0;">
        <a href="{dashboard_url}" style="display: inline-block; padding: 15px 40px; background: #00ff41; color: #000000; text-decoration: none; font-weight: bold;">OPEN DASHBOARD</a>
      </div>
    </div>
    <div style="padding: 20px; text-align: center; font-size: 12px; color: #718096;">
      You receive this email because trial reminders are enabled in your Subly profile.
    </div>
  </div>
</body>
</html>
"""


def format_amount(amount: Decimal | float | int | None, currency: str | None = "EUR") -> str:
    symbol = CURRENCY_SYMBOLS.get((currency or "EUR").upper(), "€")
    value = float(amount or 0)
    if symbol == "$":
        return f"{symbol}{value:.2f}"
    return f"{value:.2f}{symbol}"


def get_translation(language: str | None, key: str, **params) -> dict[str, str]:
    """Localized ``{"title", "body"}`` for a notification; falls back to English."""
    texts = TRANSLATIONS.get(language or "en", TRANSLATIONS["en"]).get(key) or TRANSLATIONS["en"][key]
    days = params.get("days", 0)
    return {
        "title": texts["title"],
        "body": texts["body"].format(plural="s" if days > 1 else "", **params),
    }


def trial_reminder_subject(subscription_name: str, days_left: int) -> str:
    when = "Tomorrow" if days_left == 1 else f"in {days_left} days"
    return f"Trial Ending {when} - {subscription_name}"


def render_trial_reminder_email(
    username: str,
    subscription_name: str,
    days_left: int,
    trial_end_date: datetime | None,
    amount: str,
    billing_cycle: str,
    frontend_url: str,
) -> str:
    return TRIAL_REMINDER_EMAIL.format(
        color="#ff4444" if days_left <= 1 else "#ff9900",
        username=escape(username or "there"),
        name=escape(subscription_name),
        days=days_left,
        days_label="day left" if days_left == 1 else "days left",
        trial_end=trial_end_date.strftime("%d/%m/%Y") if trial_end_date else "-",
        amount=escape(amount),
        cycle="month" if billing_cycle == "monthly" else "year",
        dashboard_url=escape(frontend_url, quote=True),
    )
