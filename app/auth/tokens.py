"""Signed access tokens carrying the caller's user id."""

import time

from jose import JWTError, jwt

from app.config import get_settings

ALGORITHM = "HS256"


def create_access_token(user_id: str, ttl_seconds: int | None = None) -> str:
    """Create a signed JWT access token containing the user ID."""
    settings = get_settings()
    now = int(time.time())
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + (ttl_seconds or settings.access_token_ttl_seconds),
    }
    return jwt.encode(payload, settings.access_token_secret, algorithm=ALGORITHM)


def verify_access_token(token: str) -> str | None:
    """Verify an access token and return the user ID, or None if invalid."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.access_token_secret, algorithms=[ALGORITHM])
        return payload.get("sub")
    except JWTError:
        return None
