"""
starboard.api.deps — FastAPI dependency injection
===================================================
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated
from zoneinfo import ZoneInfo

import jwt
from fastapi import Depends, Header, HTTPException, Query, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from starboard.config import StarboardConfig, load_config
from starboard.database.engine import create_db_engine
from starboard.engine.activation import resolve_timezone
from starboard.engine.cache import ConfigCache

_WEAK_SECRETS = frozenset({
    "starboard-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> StarboardConfig:
    return load_config()


@lru_cache(maxsize=4)
def _cache_for(engine: Engine) -> ConfigCache:
    cache = ConfigCache(engine)
    cache.load_all()
    return cache


def get_cache(engine: Annotated[Engine, Depends(get_engine)]) -> ConfigCache:
    return _cache_for(engine)


def get_timezone(
    cfg: Annotated[StarboardConfig, Depends(get_config)],
    tz: Annotated[str | None, Query(description="IANA timezone, e.g. Europe/Rome")] = None,
) -> ZoneInfo:
    """Caller-supplied zone, falling back to the server zone."""
    return resolve_timezone(tz, default=cfg.server_timezone)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------
def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate JWT and return its payload. Raises 401 if invalid."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if not payload.get("sub"):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    return payload


def get_current_admin(user: Annotated[dict, Depends(get_current_user)]) -> dict:
    """Like :func:`get_current_user`, but requires the ``is_admin`` claim."""
    if not user.get("is_admin"):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return user
