"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of starboard.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

from datetime import UTC, datetime  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively; render it as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from starboard.config import StarboardConfig  # noqa: E402
from starboard.database.models import (  # noqa: E402
    Base,
    Post,
    Profile,
    Setting,
    SpecialEvent,
    Star,
    Submission,
)
from starboard.database.seed import seed_default_settings  # noqa: E402
from starboard.engine.cache import ConfigCache  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all Starboard tables and default settings.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used by ``run_db``).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    seed_default_settings(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session for arranging and inspecting rows."""
    with Session(db_engine, expire_on_commit=False) as session:
        yield session
        session.rollback()


@pytest.fixture
def cache(db_engine: Engine) -> ConfigCache:
    c = ConfigCache(db_engine)
    c.load_all()
    return c


@pytest.fixture
def cfg() -> StarboardConfig:
    return StarboardConfig(community_name="Test Community", server_timezone="UTC")


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------
def make_profile(engine: Engine, profile_id: str, *, name: str | None = None,
                 score: int = 0, role: str = "member") -> Profile:
    with Session(engine, expire_on_commit=False) as session:
        profile = Profile(id=profile_id, name=name or profile_id, score=score, role=role)
        session.add(profile)
        session.commit()
        return profile


def make_content(engine: Engine, author_id: str, *, kind: str = "post",
                 approved: bool | None = True, stars_received: int = 0,
                 submission_date: datetime | None = None,
                 content_id: str | None = None) -> Post | Submission:
    model = Post if kind == "post" else Submission
    with Session(engine, expire_on_commit=False) as session:
        item = model(
            user_id=author_id,
            summary="test item",
            submission_date=submission_date or utc(2024, 1, 15, 10),
            approved=approved,
            stars_received=stars_received,
        )
        if content_id:
            item.id = content_id
        session.add(item)
        session.commit()
        return item


def make_event(engine: Engine, **fields) -> SpecialEvent:
    fields.setdefault("name", "Test Event")
    fields.setdefault("anchor_date", utc(2024, 1, 1))
    fields.setdefault("bonus_points", 20)
    fields.setdefault("is_recurring", False)
    fields.setdefault("show_notification", False)
    with Session(engine, expire_on_commit=False) as session:
        event = SpecialEvent(**fields)
        session.add(event)
        session.commit()
        return event


def set_setting(engine: Engine, key: str, value) -> None:
    import json

    with Session(engine) as session:
        session.get(Setting, key).value_json = json.dumps(value)
        session.commit()


def add_star(engine: Engine, profile_id: str, content_id: str, kind: str = "post") -> None:
    with Session(engine) as session:
        session.add(Star(profile_id=profile_id, content_id=content_id, content_kind=kind))
        session.commit()


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------
def make_token(sub: str, *, is_admin: bool = False) -> str:
    import jwt

    from starboard.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": sub, "is_admin": is_admin}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token() -> str:
    return make_token("admin-1", is_admin=True)


@pytest.fixture
def client(db_engine: Engine, cache: ConfigCache, cfg: StarboardConfig):
    """TestClient wired to the in-memory database.

    Overrides are keyed on the dependency objects the route modules hold,
    which stay stable even if ``starboard.api.deps`` is reloaded.
    """
    from fastapi.testclient import TestClient

    from starboard.api.main import app
    from starboard.api.routes import events as events_routes

    app.dependency_overrides[events_routes.get_engine] = lambda: db_engine
    app.dependency_overrides[events_routes.get_config] = lambda: cfg
    app.dependency_overrides[events_routes.get_cache] = lambda: cache
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
