"""
Bearer token verification.

Principals are issued elsewhere; this service only needs the opaque
principal carried in the ``sub`` claim.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from gatedchat.config import get_settings


def create_access_token(principal: str, expires_minutes: int | None = None) -> str:
    """
    Create a signed access token for ``principal``.

    Args:
        principal: Opaque principal id placed in the ``sub`` claim.
        expires_minutes: Lifetime override; defaults to the configured value.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    lifetime = expires_minutes if expires_minutes is not None else settings.jwt_access_token_expire_minutes
    payload: dict[str, Any] = {
        "sub": principal,
        "iat": now,
        "exp": now + timedelta(minutes=lifetime),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> str:
    """
    Verify an access token and return its principal.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or of the wrong type.
    """
    settings = get_settings()
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        issuer=settings.jwt_issuer,
        options={"require": ["sub", "exp", "iat", "iss"]},
    )
    if payload.get("type") != "access":
        msg = "Expected access token"
        raise jwt.InvalidTokenError(msg)
    principal = str(payload["sub"]).strip()
    if not principal:
        msg = "Token subject is empty"
        raise jwt.InvalidTokenError(msg)
    return principal
