"""
starboard.database.engine — Database Connection & Async Helpers
================================================================

The services are plain synchronous SQLAlchemy functions.  The API and the
maintenance loop run on ``asyncio``, so every service call from async code
goes through :func:`run_db`, which ships it to a worker thread and keeps
the event loop free.

:func:`run_db_with_timeout` adds the caller-level deadline every request
is wrapped in.  The deadline is advisory: when it expires the caller gets
:class:`~starboard.errors.OperationTimeoutError`, but the worker thread is
not interrupted, so its writes may still commit afterwards.

Usage::

    from starboard.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS + seed

    result = await run_db_with_timeout(toggle_star, engine, cache, **kw, timeout=12)
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
from collections.abc import Callable
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from starboard.database.models import Base
from starboard.errors import OperationTimeoutError, StoreUnavailableError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine` from *url* or ``DATABASE_URL``.

    Pool sizing targets a small community site: five persistent
    connections, ten overflow, 10 s checkout timeout, hourly recycle.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is not set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    engine = create_engine(
        url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables and seed default settings.

    Safe to call on every startup.  In production the schema is managed
    by Alembic (``alembic upgrade head``); ``create_all`` covers dev/test.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")

    from starboard.database.seed import seed_default_settings

    seed_default_settings(engine)


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on success and rolls back
    on exception."""
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def store_errors(action: str):
    """Re-raise SQLAlchemy failures inside the block as
    :class:`StoreUnavailableError`, logging the cause."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store failure during %s", action)
        raise StoreUnavailableError() from exc


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a synchronous database function on a background thread."""
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_db_with_timeout(
    func: Callable[..., T],
    *args,
    timeout: float,
    **kwargs,
) -> T:
    """Like :func:`run_db`, but stop waiting after *timeout* seconds.

    Raises
    ------
    OperationTimeoutError
        When the deadline expires.  The thread keeps running; nothing is
        rolled back on the caller's behalf.
    """
    call = functools.partial(func, *args, **kwargs)
    try:
        return await asyncio.wait_for(asyncio.to_thread(call), timeout=timeout)
    except TimeoutError:
        logger.error(
            "%s did not finish within %.1fs; reporting timeout to caller",
            getattr(func, "__name__", repr(func)), timeout,
        )
        raise OperationTimeoutError() from None
