"""
starboard.database.seed — Default Settings Seeder
===================================================

Gameplay tuning seeded on first startup: approval points, star value, and
the recurring-event instance window.

Idempotent — only inserts keys that don't already exist, so values an
admin has changed are never overwritten.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from starboard.database.models import Setting

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default settings catalogue
# ---------------------------------------------------------------------------
DEFAULT_SETTINGS: dict[str, tuple[object, str, str]] = {
    "scoring.base_points": (
        50, "scoring", "Points credited to the author when an item is approved",
    ),
    "scoring.points_per_star": (
        10, "scoring", "Points moved to or from the author per star toggle",
    ),
    "events.min_future_instances": (
        6, "events", "Minimum upcoming occurrences kept for each recurring event",
    ),
    "events.instance_horizon": (
        12, "events", "Most occurrences generated for one event in a single run",
    ),
    "events.instance_retention_days": (
        30, "events", "Days a past occurrence is kept before it is pruned",
    ),
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


# ---------------------------------------------------------------------------
# Seeder
# ---------------------------------------------------------------------------
def seed_default_settings(engine: Engine) -> int:
    """Insert default settings that don't yet exist.

    Returns the number of rows inserted.
    """
    inserted = 0
    with Session(engine) as session:
        existing = set(session.scalars(select(Setting.key)).all())
        for key, (value, category, desc) in DEFAULT_SETTINGS.items():
            if key in existing:
                continue
            session.add(Setting(
                key=key,
                value_json=json.dumps(value),
                category=category,
                description=desc,
            ))
            inserted += 1
        session.commit()

    if inserted:
        logger.info("Seeded %d default settings.", inserted)
    return inserted
