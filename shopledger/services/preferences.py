import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from shopledger.core.config import settings as app_settings
from shopledger.db.session import atomic
from shopledger.models.user import User, UserSettings
from shopledger.schemas import SettingsIn

logger = logging.getLogger(__name__)

DEFAULTS = {
    "theme": "light",
    "currency": app_settings.DEFAULT_CURRENCY,
    "profit_margin_goal": Decimal("20"),
    "low_stock_threshold": 10,
}


def get_settings(db: Session, user: User) -> UserSettings:
    """Stored settings, or an unsaved row carrying the defaults for new users."""
    row = db.query(UserSettings).filter(UserSettings.user_id == user.id).first()
    if row:
        return row
    return UserSettings(user_id=user.id, **DEFAULTS)


def save_settings(db: Session, user: User, data: SettingsIn) -> UserSettings:
    with atomic(db):
        row = db.query(UserSettings).filter(UserSettings.user_id == user.id).first()
        if not row:
            row = UserSettings(user_id=user.id)
            db.add(row)
        row.theme = data.theme
        row.currency = data.currency
        row.profit_margin_goal = data.profit_margin_goal
        row.low_stock_threshold = data.low_stock_threshold
    logger.info("Saved settings for user %s", user.id)
    return row
