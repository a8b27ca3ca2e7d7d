"""
parley.api.deps — FastAPI dependency injection
===============================================
"""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from parley.config import load_jwt_secret
from parley.database.models import TokenType
from parley.database.engine import create_db_engine
from parley.engine.access import AccessGate

JWT_ALGORITHM = "HS256"

JWT_SECRET: str = load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_access_gate() -> AccessGate:
    return AccessGate()


def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate the bearer JWT and return ``{"id", "role"}``. Raises 401.

    Only access tokens authenticate.  A token with any other ``type`` claim
    (such as the emailed archive link) is rejected; an absent claim counts
    as an access token.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if payload.get("type", TokenType.ACCESS.value) != TokenType.ACCESS.value:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Not an access token")
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    return {"id": user_id, "role": payload.get("role", "user")}


def require_right(action: str) -> Callable[..., dict]:
    """Dependency factory: the current user's role must allow *action*."""

    def _check(
        user: Annotated[dict, Depends(get_current_user)],
        gate: Annotated[AccessGate, Depends(get_access_gate)],
    ) -> dict:
        if not gate.is_allowed(user["role"], action):
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Forbidden")
        return user

    return _check
