"""
starboard.services.settings_service — Gameplay Settings
=========================================================

Typed read/write access to the ``settings`` table.  Only the keys in
:data:`~starboard.database.seed.DEFAULT_SETTINGS` are editable, and every
value is a whole number.  A successful write is audited and then reloads
the :class:`~starboard.engine.cache.ConfigCache` so the next service call
sees it.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import Engine, select

from starboard.database.engine import get_session, store_errors
from starboard.database.models import AdminActionType, Setting
from starboard.database.seed import DEFAULT_SETTINGS
from starboard.engine.cache import ConfigCache
from starboard.errors import NotFoundError, ValidationError
from starboard.services.audit import log_admin_action

logger = logging.getLogger(__name__)

# Lowest accepted value per key; anything not listed may be zero.
MINIMUMS: dict[str, int] = {
    "events.min_future_instances": 1,
    "events.instance_horizon": 1,
}


def _snapshot(row: Setting) -> dict:
    try:
        value = json.loads(row.value_json)
    except (json.JSONDecodeError, TypeError):
        value = row.value_json
    return {
        "key": row.key,
        "value": value,
        "category": row.category,
        "description": row.description,
    }


def validate_setting(key: str, value: Any) -> int:
    """Return *value* as the int stored for *key*.

    Raises
    ------
    NotFoundError
        *key* is not an editable setting.
    ValidationError
        *value* is not a whole number at or above the key's minimum.
    """
    if key not in DEFAULT_SETTINGS:
        raise NotFoundError(f"Unknown setting: {key}")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be a whole number.")
    minimum = MINIMUMS.get(key, 0)
    if value < minimum:
        raise ValidationError(f"{key} must be at least {minimum}.")
    return value


def list_settings(engine: Engine) -> list[dict]:
    """Every setting as a plain dict, ordered by category then key."""
    with store_errors("list_settings"), get_session(engine) as session:
        rows = session.scalars(
            select(Setting).order_by(Setting.category, Setting.key)
        ).all()
        return [_snapshot(r) for r in rows]


def update_setting(
    engine: Engine, cache: ConfigCache, *, key: str, value: Any, actor_id: str,
) -> dict:
    """Store *value* under *key*, audit the change and refresh *cache*."""
    value = validate_setting(key, value)
    _, category, description = DEFAULT_SETTINGS[key]

    with store_errors("update_setting"), get_session(engine) as session:
        row = session.get(Setting, key)
        before = _snapshot(row) if row is not None else None
        if row is None:
            row = Setting(key=key, category=category, description=description,
                          value_json=json.dumps(value))
            session.add(row)
        else:
            row.value_json = json.dumps(value)
        after = _snapshot(row)

        if before != after:
            log_admin_action(
                session,
                actor_id=actor_id,
                action_type=AdminActionType.UPDATE if before else AdminActionType.CREATE,
                target_table="settings",
                target_id=key,
                before=before,
                after=after,
            )

    cache.reload()
    logger.info("Setting %s set to %d by %s", key, value, actor_id)
    return after
