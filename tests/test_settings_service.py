"""
tests/test_settings_service — Admin edits to gameplay settings
================================================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from starboard.database.models import AdminLog, Setting
from starboard.database.seed import DEFAULT_SETTINGS
from starboard.errors import NotFoundError, ValidationError
from starboard.services.settings_service import (
    list_settings,
    update_setting,
    validate_setting,
)


class TestValidateSetting:
    def test_accepts_whole_numbers(self):
        assert validate_setting("scoring.points_per_star", 0) == 0
        assert validate_setting("events.instance_horizon", 24) == 24

    def test_unknown_key(self):
        with pytest.raises(NotFoundError, match="Unknown setting"):
            validate_setting("scoring.multiplier", 2)

    @pytest.mark.parametrize("value", ["10", 2.5, True, None])
    def test_rejects_non_integers(self, value):
        with pytest.raises(ValidationError, match="whole number"):
            validate_setting("scoring.base_points", value)

    def test_minimums(self):
        with pytest.raises(ValidationError, match="at least 0"):
            validate_setting("scoring.base_points", -1)
        with pytest.raises(ValidationError, match="at least 1"):
            validate_setting("events.min_future_instances", 0)


class TestUpdateSetting:
    """update_setting() writes, audits and refreshes the cache."""

    def test_cache_sees_new_value(self, db_engine, cache):
        assert cache.get_int("scoring.points_per_star") == 10
        update_setting(db_engine, cache, key="scoring.points_per_star", value=25, actor_id="admin")
        assert cache.get_int("scoring.points_per_star") == 25

    def test_audit_snapshot(self, db_engine, cache):
        after = update_setting(db_engine, cache, key="scoring.base_points", value=80,
                               actor_id="admin")
        assert after["value"] == 80

        with Session(db_engine) as session:
            log = session.scalars(select(AdminLog)).one()
        assert log.action_type == "UPDATE"
        assert log.target_table == "settings"
        assert log.target_id == "scoring.base_points"
        assert log.before_snapshot["value"] == 50
        assert log.after_snapshot["value"] == 80

    def test_unchanged_value_is_not_audited(self, db_engine, cache):
        update_setting(db_engine, cache, key="scoring.base_points", value=50, actor_id="admin")
        with Session(db_engine) as session:
            assert session.scalars(select(AdminLog)).all() == []

    def test_missing_row_is_recreated(self, db_engine, cache):
        with Session(db_engine) as session:
            session.delete(session.get(Setting, "events.instance_retention_days"))
            session.commit()

        update_setting(db_engine, cache, key="events.instance_retention_days", value=7,
                       actor_id="admin")
        with Session(db_engine) as session:
            row = session.get(Setting, "events.instance_retention_days")
            log = session.scalars(select(AdminLog)).one()
        assert row.category == "events"
        assert log.action_type == "CREATE"
        assert cache.get_int("events.instance_retention_days") == 7

    def test_invalid_value_writes_nothing(self, db_engine, cache):
        with pytest.raises(ValidationError):
            update_setting(db_engine, cache, key="scoring.base_points", value=-5,
                           actor_id="admin")
        assert cache.get_int("scoring.base_points") == 50
        with Session(db_engine) as session:
            assert session.scalars(select(AdminLog)).all() == []


class TestListSettings:
    def test_lists_seeded_settings(self, db_engine):
        rows = list_settings(db_engine)
        assert {r["key"] for r in rows} == set(DEFAULT_SETTINGS)
        assert [r["category"] for r in rows] == sorted(r["category"] for r in rows)
