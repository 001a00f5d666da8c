"""
starboard.services.audit — Admin Audit Trail
==============================================

Every admin mutation (event CRUD, settings edits, moderation, content removal,
manual maintenance runs) writes one ``admin_log`` row in the same transaction as
the change, with before/after snapshots of the affected row.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from starboard.database.engine import get_session
from starboard.database.models import AdminActionType, AdminLog

logger = logging.getLogger(__name__)


def row_to_dict(obj: Any) -> dict | None:
    """Convert a SQLAlchemy model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        val = getattr(obj, col.key, None)
        if isinstance(val, datetime):
            val = val.isoformat()
        result[col.name] = val
    return result


def log_admin_action(
    session: Session,
    *,
    actor_id: str,
    action_type: str,
    target_table: str,
    target_id: str | None,
    before: dict | None = None,
    after: dict | None = None,
    reason: str | None = None,
) -> None:
    """Insert a row into admin_log within the current transaction."""
    session.add(AdminLog(
        actor_id=actor_id,
        action_type=action_type,
        target_table=target_table,
        target_id=target_id,
        before_snapshot=before,
        after_snapshot=after,
        reason=reason,
    ))
    logger.debug(
        "admin_log: %s %s %s/%s", actor_id, action_type, target_table, target_id,
    )


def record_maintenance_run(
    engine: Engine, *, actor_id: str, target_table: str, summary: dict,
) -> None:
    """Audit an admin-triggered maintenance job with its result summary."""
    with get_session(engine) as session:
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.MAINTENANCE,
            target_table=target_table,
            target_id=None,
            after=summary,
        )
