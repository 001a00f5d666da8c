"""
starboard.services.instance_service — Recurring Occurrence Maintenance
========================================================================

Keeps a rolling window of materialized child rows for every recurring
parent event and prunes old ones.  Children are only used for "upcoming
occurrences" listings; activation and scoring always evaluate the parent
definition, so this job is never needed for correctness.

Runs daily from :mod:`starboard.maintenance` and on demand from the admin
API.  Safe to repeat: a second run with the same clock inserts nothing.
A failure on one parent is logged and the batch moves on.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, tzinfo

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import SQLAlchemyError

from starboard.database.engine import get_session
from starboard.database.models import SpecialEvent
from starboard.engine.cache import ConfigCache
from starboard.engine.instances import plan_top_up, retention_cutoff
from starboard.services.audit import record_maintenance_run
from starboard.services.event_service import DISPLAY_FIELDS

logger = logging.getLogger(__name__)

DEFAULT_MIN_FUTURE = 6
DEFAULT_HORIZON = 12
DEFAULT_RETENTION_DAYS = 30


def top_up_instances(
    engine: Engine,
    parent: SpecialEvent,
    *,
    now: datetime,
    min_future: int = DEFAULT_MIN_FUTURE,
    horizon: int = DEFAULT_HORIZON,
    tz: tzinfo = UTC,
) -> int:
    """Insert missing future children for *parent*.  Returns rows created."""
    if not parent.is_recurring or parent.parent_event_id is not None:
        return 0

    with get_session(engine) as session:
        existing = session.scalars(
            select(SpecialEvent.anchor_date)
            .where(SpecialEvent.parent_event_id == parent.id)
        ).all()
        planned = plan_top_up(
            parent, existing, now=now, min_future=min_future, horizon=horizon, tz=tz,
        )
        for anchor in planned:
            session.add(SpecialEvent(
                **{f: getattr(parent, f) for f in DISPLAY_FIELDS},
                anchor_date=anchor,
                is_recurring=False,
                recurring_interval_days=None,
                recurring_end_date=None,
                parent_event_id=parent.id,
            ))

    if planned:
        logger.info(
            "Generated %d occurrences for recurring event %r (%s)",
            len(planned), parent.name, parent.id,
        )
    return len(planned)


def prune_instances(
    engine: Engine,
    *,
    now: datetime,
    retention_days: int = DEFAULT_RETENTION_DAYS,
) -> int:
    """Delete children anchored more than *retention_days* before *now*."""
    cutoff = retention_cutoff(now, retention_days)
    with get_session(engine) as session:
        result = session.execute(
            delete(SpecialEvent)
            .where(SpecialEvent.parent_event_id.is_not(None))
            .where(SpecialEvent.anchor_date < cutoff)
        )
        removed = result.rowcount or 0

    if removed:
        logger.info(
            "Pruned %d occurrences older than %s (retention_days=%d)",
            removed, cutoff.date().isoformat(), retention_days,
        )
    return removed


def run_instance_maintenance(
    engine: Engine,
    cache: ConfigCache,
    *,
    now: datetime | None = None,
    tz: tzinfo = UTC,
    actor_id: str | None = None,
) -> dict:
    """Top up every recurring parent, then prune old children.

    Returns ``{"parents": N, "created": M, "pruned": P, "failed": [ids],
    "timestamp": ...}``.  Runs triggered by an admin (*actor_id*) are
    recorded in ``admin_log``.
    """
    now = now or datetime.now(UTC)
    min_future = cache.get_int("events.min_future_instances", DEFAULT_MIN_FUTURE)
    horizon = cache.get_int("events.instance_horizon", DEFAULT_HORIZON)
    retention_days = cache.get_int("events.instance_retention_days", DEFAULT_RETENTION_DAYS)

    with get_session(engine) as session:
        parents = list(session.scalars(
            select(SpecialEvent)
            .where(SpecialEvent.parent_event_id.is_(None))
            .where(SpecialEvent.is_recurring.is_(True))
        ).all())

    created = 0
    failed: list[str] = []
    for parent in parents:
        try:
            created += top_up_instances(
                engine, parent, now=now, min_future=min_future, horizon=horizon, tz=tz,
            )
        except SQLAlchemyError:
            logger.exception(
                "Occurrence generation failed for event %s; continuing", parent.id,
            )
            failed.append(parent.id)

    try:
        pruned = prune_instances(engine, now=now, retention_days=retention_days)
    except SQLAlchemyError:
        logger.exception("Occurrence pruning failed")
        pruned = 0

    logger.info(
        "Instance maintenance: %d recurring events, %d created, %d pruned, %d failed",
        len(parents), created, pruned, len(failed),
    )
    summary = {
        "parents": len(parents),
        "created": created,
        "pruned": pruned,
        "failed": failed,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if actor_id is not None:
        record_maintenance_run(
            engine, actor_id=actor_id, target_table="special_events", summary=summary,
        )
    return summary
