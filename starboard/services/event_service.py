"""
starboard.services.event_service — Special Event Store Access
===============================================================

Store-facing half of the event selector plus the admin CRUD for event
definitions.

Every "which event applies" question is answered by fetching the parent
events once and handing them to :mod:`starboard.engine.selector`; nothing
else in the codebase re-implements activation.

Admin writes are validated up front (nothing is written when validation
fails) and each one leaves an ``admin_log`` row.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, time, tzinfo
from typing import Any

from sqlalchemy import Engine, delete, select, update

from starboard.database.engine import get_session, store_errors
from starboard.database.models import AdminActionType, SpecialEvent
from starboard.engine.activation import as_utc, local_day, parse_time_of_day
from starboard.engine.selector import (
    EventFilter,
    filter_events,
    list_active_notifications,
    pick_active_event_for_date,
)
from starboard.errors import NotFoundError, ValidationError
from starboard.services.audit import log_admin_action, row_to_dict

logger = logging.getLogger(__name__)

# Fields an admin may set on an event definition.
EDITABLE_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "anchor_date",
    "start_time",
    "end_time",
    "bonus_points",
    "is_recurring",
    "recurring_interval_days",
    "recurring_end_date",
    "show_notification",
    "notification_message",
)

# Copied onto generated children; kept in sync when the parent is edited.
DISPLAY_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "start_time",
    "end_time",
    "bonus_points",
    "show_notification",
    "notification_message",
)

_SCHEDULE_FIELDS = ("anchor_date", "recurring_interval_days", "recurring_end_date")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def _as_instant(value: Any, field: str) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time(0), tzinfo=UTC)
    if isinstance(value, str) and value.strip():
        try:
            return as_utc(datetime.fromisoformat(value.strip()))
        except ValueError as exc:
            raise ValidationError(f"Invalid {field}: {value!r}") from exc
    raise ValidationError(f"{field} is required.")


def _normalize_time(value: str | None, field: str) -> str | None:
    if value is None or not str(value).strip():
        return None
    minutes = parse_time_of_day(str(value))
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_event_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Validate a complete set of event fields and return the stored form.

    Times are normalized to ``HH:MM``, instants to UTC.  Recurrence fields
    are cleared on non-recurring events.

    Raises
    ------
    ValidationError
        With a user-displayable reason for the first problem found.
    """
    name = (fields.get("name") or "").strip()
    if not name:
        raise ValidationError("Event name is required.")

    try:
        bonus = int(fields.get("bonus_points") or 0)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Bonus points must be a whole number.") from exc
    if bonus < 0:
        raise ValidationError("Bonus points cannot be negative.")

    anchor = _as_instant(fields.get("anchor_date"), "anchor_date")
    start = _normalize_time(fields.get("start_time"), "start_time")
    end = _normalize_time(fields.get("end_time"), "end_time")
    if start and end and parse_time_of_day(start) > parse_time_of_day(end):
        raise ValidationError("Start time must not be after end time.")

    is_recurring = bool(fields.get("is_recurring"))
    interval = None
    end_date = None
    if is_recurring:
        try:
            interval = int(fields.get("recurring_interval_days") or 0)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Recurrence interval must be a whole number of days.") from exc
        if interval < 1:
            raise ValidationError("Recurring events need an interval of at least 1 day.")
        if fields.get("recurring_end_date"):
            end_date = _as_instant(fields["recurring_end_date"], "recurring_end_date")
            if local_day(end_date) < local_day(anchor):
                raise ValidationError("Recurrence end date cannot be before the event date.")

    message = (fields.get("notification_message") or "").strip() or None
    description = (fields.get("description") or "").strip() or None

    return {
        "name": name,
        "description": description,
        "anchor_date": anchor,
        "start_time": start,
        "end_time": end,
        "bonus_points": bonus,
        "is_recurring": is_recurring,
        "recurring_interval_days": interval,
        "recurring_end_date": end_date,
        "show_notification": bool(fields.get("show_notification")),
        "notification_message": message,
    }


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_parent_events(engine: Engine) -> list[SpecialEvent]:
    """All admin-defined events, newest anchor first.  Children excluded."""
    with store_errors("list_parent_events"), get_session(engine) as session:
        return list(session.scalars(
            select(SpecialEvent)
            .where(SpecialEvent.parent_event_id.is_(None))
            .order_by(SpecialEvent.anchor_date.desc())
        ).all())


def list_children(engine: Engine, parent_id: str) -> list[SpecialEvent]:
    with store_errors("list_children"), get_session(engine) as session:
        return list(session.scalars(
            select(SpecialEvent)
            .where(SpecialEvent.parent_event_id == parent_id)
            .order_by(SpecialEvent.anchor_date)
        ).all())


def get_event(engine: Engine, event_id: str) -> SpecialEvent:
    with store_errors("get_event"), get_session(engine) as session:
        event = session.get(SpecialEvent, event_id)
        if event is None:
            raise NotFoundError("Event not found.")
        return event


def get_active_event_for_date(
    engine: Engine, day: date | datetime, tz: tzinfo = UTC,
) -> SpecialEvent | None:
    """The event whose bonus applies on *day* (date-only check)."""
    return pick_active_event_for_date(list_parent_events(engine), day, tz)


def get_active_notifications(
    engine: Engine, now: datetime | None = None, tz: tzinfo = UTC,
) -> list[SpecialEvent]:
    now = now or datetime.now(UTC)
    return list_active_notifications(list_parent_events(engine), now, tz)


def get_events_for_display(
    engine: Engine,
    event_filter: EventFilter | str = EventFilter.ALL,
    now: datetime | None = None,
    tz: tzinfo = UTC,
) -> list[SpecialEvent]:
    now = now or datetime.now(UTC)
    events = filter_events(list_parent_events(engine), event_filter, now, tz)
    logger.debug("Listing %d events (filter=%s)", len(events), event_filter)
    return events


# ---------------------------------------------------------------------------
# Admin mutations
# ---------------------------------------------------------------------------
def create_event(engine: Engine, *, actor_id: str, **fields: Any) -> SpecialEvent:
    """Create a parent event definition.

    Occurrence rows for recurring events are generated by the maintenance
    job, not here.
    """
    values = normalize_event_fields(fields)
    with store_errors("create_event"), get_session(engine) as session:
        event = SpecialEvent(**values, parent_event_id=None)
        session.add(event)
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.CREATE,
            target_table="special_events",
            target_id=event.id,
            after=row_to_dict(event),
        )
        session.refresh(event)

    logger.info(
        "Event %r (%s) created by %s (recurring=%s, bonus=%d)",
        event.name, event.id, actor_id, event.is_recurring, event.bonus_points,
    )
    return event


def update_event(
    engine: Engine, event_id: str, *, actor_id: str, **changes: Any,
) -> SpecialEvent:
    """Apply *changes* to an event definition.

    The merged result is validated as a whole.  When a parent stops
    recurring, or its schedule changes, its generated children are
    deleted; otherwise display fields are copied down to them.
    """
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")

    with store_errors("update_event"), get_session(engine) as session:
        event = session.get(SpecialEvent, event_id)
        if event is None:
            raise NotFoundError("Event not found.")

        before = row_to_dict(event)
        merged = {f: getattr(event, f) for f in EDITABLE_FIELDS}
        merged.update(changes)
        values = normalize_event_fields(merged)

        schedule_changed = (not values["is_recurring"]) or any(
            _differs(getattr(event, f), values[f]) for f in _SCHEDULE_FIELDS
        )
        for key, value in values.items():
            setattr(event, key, value)

        children_removed = 0
        if event.parent_event_id is None:
            if schedule_changed:
                result = session.execute(
                    delete(SpecialEvent).where(SpecialEvent.parent_event_id == event.id)
                )
                children_removed = result.rowcount or 0
            else:
                session.execute(
                    update(SpecialEvent)
                    .where(SpecialEvent.parent_event_id == event.id)
                    .values({f: values[f] for f in DISPLAY_FIELDS})
                )

        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.UPDATE,
            target_table="special_events",
            target_id=event.id,
            before=before,
            after=row_to_dict(event),
        )
        session.refresh(event)

    if children_removed:
        logger.info(
            "Event %s schedule changed; removed %d generated occurrences",
            event_id, children_removed,
        )
    logger.info("Event %r (%s) updated by %s", event.name, event.id, actor_id)
    return event


def delete_event(engine: Engine, event_id: str, *, actor_id: str) -> int:
    """Delete an event and any occurrences generated from it.

    Returns the number of child rows removed alongside it.
    """
    with store_errors("delete_event"), get_session(engine) as session:
        event = session.get(SpecialEvent, event_id)
        if event is None:
            raise NotFoundError("Event not found.")

        before = row_to_dict(event)
        result = session.execute(
            delete(SpecialEvent).where(SpecialEvent.parent_event_id == event_id)
        )
        children = result.rowcount or 0
        session.delete(event)
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table="special_events",
            target_id=event_id,
            before=before,
            reason=f"{children} generated occurrences removed" if children else None,
        )

    logger.info(
        "Event %s deleted by %s (%d occurrences removed)", event_id, actor_id, children,
    )
    return children


def _differs(stored: Any, new: Any) -> bool:
    if isinstance(stored, datetime) and isinstance(new, datetime):
        return as_utc(stored) != as_utc(new)
    return stored != new
