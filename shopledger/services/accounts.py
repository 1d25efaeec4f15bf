import logging

from sqlalchemy.orm import Session

from shopledger.core.config import settings
from shopledger.core.errors import AuthError
from shopledger.core.security import hash_password, verify_password
from shopledger.db.session import atomic
from shopledger.models.user import User
from shopledger.schemas import RegisterIn

logger = logging.getLogger(__name__)


def register(db: Session, data: RegisterIn) -> User:
    if db.query(User).filter(User.email == data.email).first():
        raise AuthError("An account with this email already exists")
    with atomic(db):
        user = User(email=data.email, full_name=data.full_name,
                    hashed_password=hash_password(data.password))
        db.add(user)
    logger.info("Registered user %s", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == (email or "").strip().lower()).first()
    if not user or not verify_password(password or "", user.hashed_password):
        raise AuthError("Invalid email or password")
    return user


def seed_owner(db: Session):
    """Create the configured owner account on startup, if any is configured."""
    if not (settings.OWNER_EMAIL and settings.OWNER_PASSWORD):
        return None
    email = settings.OWNER_EMAIL.strip().lower()
    user = db.query(User).filter_by(email=email).first()
    if not user:
        user = User(email=email, full_name=settings.OWNER_NAME,
                    hashed_password=hash_password(settings.OWNER_PASSWORD))
        db.add(user); db.commit()
        logger.info("Seeded owner account %s", email)
    return user
