"""
tests/test_event_service — Event definitions, lookups and admin CRUD
======================================================================
"""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from conftest import make_event, utc
from starboard.database.models import AdminLog, SpecialEvent
from starboard.engine.activation import as_utc
from starboard.errors import NotFoundError, StoreUnavailableError, ValidationError
from starboard.services import event_service
from starboard.services.event_service import (
    create_event,
    delete_event,
    get_active_event_for_date,
    get_active_notifications,
    get_event,
    get_events_for_display,
    list_children,
    list_parent_events,
    normalize_event_fields,
    update_event,
)


def _count(engine, model=SpecialEvent) -> int:
    with Session(engine) as session:
        return session.scalar(select(func.count()).select_from(model))


def _log(engine) -> list[AdminLog]:
    with Session(engine) as session:
        return list(session.scalars(select(AdminLog).order_by(AdminLog.id)).all())


def _weekly_with_children(engine, n: int = 3) -> SpecialEvent:
    parent = make_event(engine, name="Weekly", anchor_date=utc(2024, 1, 1, 18),
                        is_recurring=True, recurring_interval_days=7, bonus_points=10)
    for k in range(n):
        make_event(engine, name="Weekly", anchor_date=utc(2024, 3, 4 + 7 * k, 18),
                   bonus_points=10, parent_event_id=parent.id)
    return parent


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
class TestNormalizeEventFields:
    """normalize_event_fields() — validated, stored form."""

    BASE = {"name": " Launch ", "anchor_date": date(2024, 3, 1), "bonus_points": 20}

    def test_minimal(self):
        values = normalize_event_fields(dict(self.BASE))
        assert values["name"] == "Launch"
        assert values["anchor_date"] == datetime(2024, 3, 1, tzinfo=UTC)
        assert values["is_recurring"] is False
        assert values["start_time"] is None

    def test_times_normalized(self):
        values = normalize_event_fields({**self.BASE, "start_time": "9:05", "end_time": "17:00:00"})
        assert (values["start_time"], values["end_time"]) == ("09:05", "17:00")

    def test_recurrence_cleared_when_not_recurring(self):
        values = normalize_event_fields({
            **self.BASE, "recurring_interval_days": 7,
            "recurring_end_date": date(2024, 4, 1),
        })
        assert values["recurring_interval_days"] is None
        assert values["recurring_end_date"] is None

    def test_iso_string_anchor(self):
        values = normalize_event_fields({**self.BASE, "anchor_date": "2024-03-01T10:00:00+02:00"})
        assert values["anchor_date"] == datetime(2024, 3, 1, 8, tzinfo=UTC)

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"name": "  "}, "Event name is required"),
            ({"bonus_points": -1}, "cannot be negative"),
            ({"start_time": "18:00", "end_time": "09:00"}, "Start time must not be after end time"),
            ({"start_time": "25:00"}, "Invalid time of day"),
            ({"is_recurring": True, "recurring_interval_days": 0}, "interval of at least 1 day"),
            ({"is_recurring": True}, "interval of at least 1 day"),
            ({"is_recurring": True, "recurring_interval_days": 7,
              "recurring_end_date": date(2024, 2, 1)}, "cannot be before the event date"),
            ({"anchor_date": None}, "anchor_date is required"),
            ({"anchor_date": "yesterday"}, "Invalid anchor_date"),
        ],
    )
    def test_rejections(self, overrides, message):
        with pytest.raises(ValidationError, match=message):
            normalize_event_fields({**self.BASE, **overrides})


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
class TestEventLookups:
    """Store-backed wrappers around the selector."""

    def test_active_event_for_date_ignores_children(self, db_engine):
        parent = _weekly_with_children(db_engine)
        picked = get_active_event_for_date(db_engine, date(2024, 3, 4))
        assert picked.id == parent.id
        assert get_active_event_for_date(db_engine, date(2024, 3, 5)) is None

    def test_non_recurring_wins_on_shared_day(self, db_engine):
        _weekly_with_children(db_engine, n=0)
        special = make_event(db_engine, name="Special", anchor_date=utc(2024, 3, 4), bonus_points=50)
        assert get_active_event_for_date(db_engine, date(2024, 3, 4)).id == special.id

    def test_notifications(self, db_engine):
        banner = make_event(db_engine, name="Banner", anchor_date=utc(2024, 3, 1),
                            show_notification=True, notification_message="Double points!",
                            start_time="09:00", end_time="17:00")
        make_event(db_engine, name="Quiet", anchor_date=utc(2024, 3, 1))

        active = get_active_notifications(db_engine, now=utc(2024, 3, 1, 10))
        assert [e.id for e in active] == [banner.id]
        assert get_active_notifications(db_engine, now=utc(2024, 3, 1, 20)) == []

    def test_display_filters(self, db_engine):
        make_event(db_engine, name="Old", anchor_date=utc(2024, 2, 1))
        make_event(db_engine, name="Soon", anchor_date=utc(2024, 4, 1))
        _weekly_with_children(db_engine)

        now = utc(2024, 3, 10, 12)
        names = lambda f: [e.name for e in get_events_for_display(db_engine, f, now=now)]  # noqa: E731
        assert names("all") == ["Soon", "Old", "Weekly"]
        assert names("upcoming") == ["Soon"]
        assert names("past") == ["Old", "Weekly"]
        assert names("current") == []

    def test_list_parent_events_and_children(self, db_engine):
        parent = _weekly_with_children(db_engine, n=2)
        assert [e.id for e in list_parent_events(db_engine)] == [parent.id]
        children = list_children(db_engine, parent.id)
        assert len(children) == 2
        assert as_utc(children[0].anchor_date) < as_utc(children[1].anchor_date)

    def test_get_event_not_found(self, db_engine):
        with pytest.raises(NotFoundError, match="Event not found"):
            get_event(db_engine, "missing")


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
class TestCreateEvent:
    def test_create_writes_row_and_audit(self, db_engine):
        event = create_event(
            db_engine, actor_id="admin-1",
            name="Game Night", anchor_date=date(2024, 3, 1),
            start_time="19:00", end_time="23:00", bonus_points=15,
            is_recurring=True, recurring_interval_days=7,
        )
        stored = get_event(db_engine, event.id)
        assert stored.name == "Game Night"
        assert stored.recurring_interval_days == 7
        assert stored.parent_event_id is None

        [entry] = _log(db_engine)
        assert entry.action_type == "CREATE"
        assert entry.target_table == "special_events"
        assert entry.target_id == event.id
        assert entry.after_snapshot["name"] == "Game Night"

    def test_invalid_create_writes_nothing(self, db_engine):
        with pytest.raises(ValidationError):
            create_event(db_engine, actor_id="admin-1", name="", anchor_date=date(2024, 3, 1))
        assert _count(db_engine) == 0
        assert _count(db_engine, AdminLog) == 0

    def test_store_failure_rolls_back(self, db_engine, monkeypatch):
        def _down(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("db down"))

        monkeypatch.setattr(event_service, "log_admin_action", _down)
        with pytest.raises(StoreUnavailableError):
            create_event(db_engine, actor_id="admin-1", name="Game Night",
                         anchor_date=date(2024, 3, 1))
        assert _count(db_engine) == 0


class TestUpdateEvent:
    def test_display_change_propagates_to_children(self, db_engine):
        parent = _weekly_with_children(db_engine)
        update_event(db_engine, parent.id, actor_id="admin-1",
                     name="Weekly Jam", bonus_points=30)

        children = list_children(db_engine, parent.id)
        assert len(children) == 3
        assert {c.name for c in children} == {"Weekly Jam"}
        assert {c.bonus_points for c in children} == {30}

    def test_schedule_change_removes_children(self, db_engine):
        parent = _weekly_with_children(db_engine)
        update_event(db_engine, parent.id, actor_id="admin-1", recurring_interval_days=14)
        assert list_children(db_engine, parent.id) == []
        assert get_event(db_engine, parent.id).recurring_interval_days == 14

    def test_stop_recurring_removes_children(self, db_engine):
        parent = _weekly_with_children(db_engine)
        updated = update_event(db_engine, parent.id, actor_id="admin-1", is_recurring=False)
        assert updated.is_recurring is False
        assert updated.recurring_interval_days is None
        assert list_children(db_engine, parent.id) == []

    def test_merged_state_is_validated(self, db_engine):
        event = make_event(db_engine, start_time="09:00", end_time="10:00")
        with pytest.raises(ValidationError, match="Start time must not be after end time"):
            update_event(db_engine, event.id, actor_id="admin-1", start_time="11:00")
        assert get_event(db_engine, event.id).start_time == "09:00"

    def test_unknown_field(self, db_engine):
        event = make_event(db_engine)
        with pytest.raises(ValidationError, match="parent_event_id"):
            update_event(db_engine, event.id, actor_id="admin-1", parent_event_id="x")

    def test_not_found(self, db_engine):
        with pytest.raises(NotFoundError):
            update_event(db_engine, "missing", actor_id="admin-1", name="x")

    def test_audit_snapshot(self, db_engine):
        event = make_event(db_engine, name="Before")
        update_event(db_engine, event.id, actor_id="admin-1", name="After")
        [entry] = _log(db_engine)
        assert entry.action_type == "UPDATE"
        assert entry.before_snapshot["name"] == "Before"
        assert entry.after_snapshot["name"] == "After"

    def test_store_failure_keeps_children(self, db_engine, monkeypatch):
        parent = _weekly_with_children(db_engine)

        def _down(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("db down"))

        monkeypatch.setattr(event_service, "log_admin_action", _down)
        with pytest.raises(StoreUnavailableError):
            update_event(db_engine, parent.id, actor_id="admin-1", recurring_interval_days=14)
        assert len(list_children(db_engine, parent.id)) == 3
        assert get_event(db_engine, parent.id).recurring_interval_days == 7


class TestDeleteEvent:
    def test_delete_parent_and_children(self, db_engine):
        parent = _weekly_with_children(db_engine)
        assert delete_event(db_engine, parent.id, actor_id="admin-1") == 3
        assert _count(db_engine) == 0

        [entry] = _log(db_engine)
        assert entry.action_type == "DELETE"
        assert entry.reason == "3 generated occurrences removed"

    def test_delete_missing(self, db_engine):
        with pytest.raises(NotFoundError):
            delete_event(db_engine, "missing", actor_id="admin-1")
