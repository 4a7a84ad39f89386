"""Security utilities: JWT access tokens."""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import jwt

from waitlist.core.config import settings
from waitlist.core.logging import get_logger

logger = get_logger(__name__)


def create_access_token(account_id: int, role: str) -> str:
    """Create a JWT access token."""
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET must be set")

    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": str(account_id),
        "role": role,
        "iat": now,
        "exp": expire,
        "jti": str(uuid4()),
        "type": "access",
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def verify_access_token(token: str) -> dict[str, Any]:
    """Verify and decode a JWT access token."""
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET must be set")

    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("Invalid token type")
    return payload
