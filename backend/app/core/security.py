"""
Shared-password authentication.

The unit uses a single password configured in ``SECRET_PASSWORD``. A successful
login receives a signed session token (JWT) carried in an HTTP-only cookie.
"""
import hmac
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from .config import settings

SESSION_SUBJECT = "retina-unit"


def verify_shared_password(password: Optional[str]) -> bool:
    if not settings.SECRET_PASSWORD or not password:
        return False
    return hmac.compare_digest(password.encode("utf-8"), settings.SECRET_PASSWORD.encode("utf-8"))


def create_session_token(expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(days=settings.SESSION_EXPIRE_DAYS))
    payload = {"sub": SESSION_SUBJECT, "type": "session", "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session_token(token: Optional[str]) -> Optional[dict]:
    """Return the token payload, or None when missing, expired or tampered with."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != "session":
        return None
    return payload


def session_max_age() -> int:
    return settings.SESSION_EXPIRE_DAYS * 24 * 60 * 60
