"""Caller resolution for protected endpoints."""

from __future__ import annotations

import jwt
import structlog
from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gatedchat.auth.jwt import verify_token

_bearer = HTTPBearer(auto_error=False)

_CHALLENGE = {"WWW-Authenticate": "Bearer"}


async def get_caller(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> str:
    """
    Principal of the bearer token.

    Raises 401 with a Bearer challenge when the token is missing or invalid.
    The principal is bound to the log context for the rest of the request.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated", headers=_CHALLENGE)
    try:
        principal = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e), headers=_CHALLENGE) from e
    structlog.contextvars.bind_contextvars(caller=principal)
    return principal
