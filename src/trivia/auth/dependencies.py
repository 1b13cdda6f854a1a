"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from trivia.auth.jwt import verify_token
from trivia.errors import NotAuthenticated

_bearer = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> str:
    """Verify the bearer token and return the caller's user id."""
    if credentials is None:
        raise NotAuthenticated()
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise NotAuthenticated(str(e)) from e
    return str(payload["sub"])
