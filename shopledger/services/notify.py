import logging
import re
from decimal import Decimal
from urllib.parse import quote

import requests

from shopledger.core.config import settings
from shopledger.core.errors import NotificationError
from shopledger.core.templating import templates
from shopledger.services.currency import symbol

logger = logging.getLogger(__name__)


def reminder_subject(balance, currency: str = "NGN", weekly: bool = False) -> str:
    prefix = "Weekly Payment Reminder" if weekly else "Payment Reminder"
    return f"{prefix} - Outstanding Balance: {symbol(currency)}{Decimal(str(balance)):.2f}"


def render_reminder_email(customer_name: str, balance, currency: str = "NGN", weekly: bool = False):
    """Return (subject, html) for a payment reminder."""
    html = templates.get_template("emails/payment_reminder.html").render(
        customer_name=customer_name,
        balance=f"{symbol(currency)}{Decimal(str(balance)):.2f}",
        weekly=weekly,
    )
    return reminder_subject(balance, currency, weekly), html


def send_email(to: str, subject: str, html: str) -> dict:
    if not to:
        raise NotificationError("Please enter an email address")
    if not settings.RESEND_API_KEY:
        raise NotificationError("RESEND_API_KEY is not configured")
    try:
        resp = requests.post(
            settings.RESEND_API_URL,
            headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
            json={"from": settings.REMINDER_FROM, "to": [to], "subject": subject, "html": html},
            timeout=10,
        )
    except requests.RequestException as e:
        logger.error("Email to %s failed: %s", to, e)
        raise NotificationError(f"Failed to send email: {e}")
    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not resp.ok:
        logger.error("Email provider rejected message to %s: %s", to, data)
        raise NotificationError(data.get("message") or "Failed to send email")
    logger.info("Email sent to %s", to)
    return data


def whatsapp_link(phone: str, customer_name: str, balance, currency: str = "NGN") -> str:
    message = (
        f"Hi {customer_name},\n\n"
        f"This is a friendly reminder that you have an outstanding balance of "
        f"{symbol(currency)}{Decimal(str(balance)):.2f}.\n\n"
        f"Please settle this at your earliest convenience.\n\nThank you!"
    )
    digits = re.sub(r"\D", "", phone or "")
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"
