"""
starboard.services.reconciliation_service — Star Counter Reconciliation
=========================================================================

Weekly job that validates each item's ``stars_received`` against the
``stars`` rows pointing at it and corrects drift if found.

How it works:
    1. ``COUNT(*)`` of ``stars`` grouped by content id, per content kind.
    2. Compare against the stored counter on every post and submission.
    3. On mismatch, overwrite the counter with the true count.
    4. Log all corrections for audit.

Author scores are not recomputed: they also include approval awards and
event bonuses, which have no ledger to rebuild them from.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, func, select, update

from starboard.database.engine import get_session
from starboard.database.models import CONTENT_MODELS, Star
from starboard.services.audit import record_maintenance_run

logger = logging.getLogger(__name__)


def reconcile_star_counts(engine: Engine, *, actor_id: str | None = None) -> dict:
    """Validate star counters against the stars table and fix drift.

    Returns ``{"checked": N, "corrected": M, "corrections": [...],
    "timestamp": ...}``.  Admin-triggered runs (*actor_id*) are audited.
    """
    corrections: list[dict] = []
    checked = 0

    with get_session(engine) as session:
        for kind, model in CONTENT_MODELS.items():
            truth_rows = session.execute(
                select(Star.content_id, func.count().label("actual"))
                .where(Star.content_kind == kind.value)
                .group_by(Star.content_id)
            ).all()
            truth_map: dict[str, int] = {row.content_id: row.actual for row in truth_rows}

            for item_id, stored in session.execute(
                select(model.id, model.stars_received)
            ).all():
                checked += 1
                actual = truth_map.get(item_id, 0)
                if stored == actual:
                    continue
                corrections.append({
                    "kind": kind.value,
                    "content_id": item_id,
                    "stored": stored,
                    "actual": actual,
                    "diff": actual - stored,
                })
                session.execute(
                    update(model)
                    .where(model.id == item_id)
                    .values(stars_received=actual)
                    .execution_options(synchronize_session=False)
                )

    if corrections:
        logger.warning(
            "Star reconciliation: corrected %d/%d counters: %s",
            len(corrections), checked, corrections,
        )
    else:
        logger.info("Star reconciliation: all %d counters match", checked)

    summary = {
        "checked": checked,
        "corrected": len(corrections),
        "corrections": corrections,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if actor_id is not None:
        record_maintenance_run(engine, actor_id=actor_id, target_table="stars", summary=summary)
    return summary
