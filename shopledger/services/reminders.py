import logging
from dataclasses import dataclass, field, asdict
from typing import List

from sqlalchemy.orm import Session

from shopledger.core.config import settings
from shopledger.core.errors import NotificationError
from shopledger.models.debt import Debtor, PENDING
from shopledger.models.user import User
from shopledger.services import notify
from shopledger.services.debt import get_debtor
from shopledger.services.preferences import get_settings

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    total: int = 0
    sent: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def as_dict(self):
        return asdict(self)


def send_payment_reminder(db: Session, user: User, debtor_id: int, email: str = None) -> dict:
    """Email one debtor; the address defaults to the one stored on the debtor."""
    debtor = get_debtor(db, user, debtor_id)
    to = (email or debtor.customer_email or "").strip()
    if not to:
        raise NotificationError("Please enter an email address")
    currency = get_settings(db, user).currency
    subject, html = notify.render_reminder_email(debtor.customer_name, debtor.current_balance, currency)
    logger.info("Sending payment reminder to %s for %s", to, debtor.customer_name)
    return notify.send_email(to, subject, html)


def whatsapp_reminder(db: Session, user: User, debtor_id: int) -> str:
    debtor = get_debtor(db, user, debtor_id)
    currency = get_settings(db, user).currency
    return notify.whatsapp_link(debtor.customer_phone, debtor.customer_name,
                                debtor.current_balance, currency)


def send_weekly_reminders(db: Session) -> BatchResult:
    """Email every pending debtor that has an address and a positive balance."""
    if not settings.RESEND_API_KEY:
        raise NotificationError("RESEND_API_KEY is not configured")
    debtors = (db.query(Debtor)
                 .filter(Debtor.status == PENDING, Debtor.current_balance > 0,
                         Debtor.customer_email.isnot(None), Debtor.customer_email != "")
                 .order_by(Debtor.user_id, Debtor.id)
                 .all())
    logger.info("Found %s debtors with pending balances and email addresses", len(debtors))
    result = BatchResult(total=len(debtors))
    currencies = {}
    for debtor in debtors:
        if debtor.user_id not in currencies:
            owner = db.get(User, debtor.user_id)
            currencies[debtor.user_id] = get_settings(db, owner).currency
        subject, html = notify.render_reminder_email(debtor.customer_name, debtor.current_balance,
                                                     currencies[debtor.user_id], weekly=True)
        try:
            notify.send_email(debtor.customer_email, subject, html)
            result.sent += 1
        except NotificationError as e:
            result.failed += 1
            result.errors.append(f"{debtor.customer_email}: {e.message}")
    logger.info("Weekly reminders complete. Sent: %s, Failed: %s", result.sent, result.failed)
    return result
