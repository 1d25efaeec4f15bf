from passlib.context import CryptContext
from jose import jwt, JWTError
from datetime import datetime, timedelta
from shopledger.core.config import settings
from shopledger.core.errors import AuthError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
ALGORITHM = "HS256"

def hash_password(p: str) -> str: return pwd_context.hash(p)
def verify_password(p: str, hashed: str) -> bool: return pwd_context.verify(p, hashed)

def create_token(sub: str, expires_minutes=60*8):
    to_encode = {"sub": sub, "exp": datetime.utcnow() + timedelta(minutes=expires_minutes)}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)

def decode_token(token: str) -> str:
    """Return the subject of a valid token, raise AuthError otherwise."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise AuthError(f"Invalid token: {e}")
    sub = payload.get("sub")
    if not sub:
        raise AuthError("Invalid token: missing subject")
    return sub
