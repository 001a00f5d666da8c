"""
starboard.engine.instances — Recurring Occurrence Planning
============================================================

Pure planning for recurring events: which future occurrence dates should
exist as child rows, and which occurrences to show in a listing.  The
store side (inserting and pruning rows) lives in
:mod:`starboard.services.instance_service`.

Occurrences are computed in calendar days of the evaluation zone and
keep the parent's local time of day, so a DST change never moves an
occurrence onto a neighbouring date.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta, tzinfo

from starboard.engine.activation import EventLike, as_utc, local_day

__all__ = [
    "list_upcoming_occurrences",
    "occurrence_instant",
    "plan_top_up",
    "retention_cutoff",
]


def _interval(event: EventLike) -> int | None:
    interval = event.recurring_interval_days
    if not event.is_recurring or not interval or interval < 1:
        return None
    return interval


def _end_day(event: EventLike, tz: tzinfo) -> date | None:
    if event.recurring_end_date is None:
        return None
    return local_day(event.recurring_end_date, tz)


def _first_on_or_after(start: date, interval: int, target: date) -> date:
    """First day of the sequence ``start + k*interval`` that is >= *target*."""
    if start >= target:
        return start
    steps = -(-(target - start).days // interval)
    return start + timedelta(days=steps * interval)


def occurrence_instant(event: EventLike, day: date, tz: tzinfo = UTC) -> datetime:
    """The UTC instant of *event*'s occurrence on *day* (parent's local time)."""
    anchor_local = as_utc(event.anchor_date).astimezone(tz)
    return datetime.combine(day, anchor_local.time(), tzinfo=tz).astimezone(UTC)


def plan_top_up(
    parent: EventLike,
    existing: Iterable[datetime],
    *,
    now: datetime,
    min_future: int = 6,
    horizon: int = 12,
    tz: tzinfo = UTC,
) -> list[datetime]:
    """Return anchor instants for the child occurrences to create.

    *existing* holds the anchor dates of the parent's current children.
    Generation steps forward from the latest child (or the parent's
    anchor), skips days already in the past and days that already have a
    child, and stops at the recurrence end date.  At most *horizon*
    instants are returned.
    """
    interval = _interval(parent)
    if interval is None:
        return []

    today = local_day(now, tz)
    existing_days = {local_day(a, tz) for a in existing}
    future = sum(1 for d in existing_days if d >= today)
    wanted = min(min_future - future, horizon)
    if wanted <= 0:
        return []

    end_day = _end_day(parent, tz)
    cursor = max(existing_days, default=local_day(parent.anchor_date, tz))
    day = _first_on_or_after(cursor + timedelta(days=interval), interval, today)

    planned: list[datetime] = []
    while len(planned) < wanted:
        if end_day is not None and day > end_day:
            break
        if day not in existing_days:
            planned.append(occurrence_instant(parent, day, tz))
        day += timedelta(days=interval)
    return planned


def list_upcoming_occurrences(
    event: EventLike,
    *,
    now: datetime,
    tz: tzinfo = UTC,
    count: int = 6,
) -> list[datetime]:
    """Next *count* occurrences from today on, computed from the definition.

    A non-recurring event yields its anchor if that day has not passed.
    """
    today = local_day(now, tz)
    anchor_day = local_day(event.anchor_date, tz)
    interval = _interval(event)
    if interval is None:
        if event.is_recurring or anchor_day < today or count < 1:
            return []
        return [as_utc(event.anchor_date)]

    end_day = _end_day(event, tz)
    day = _first_on_or_after(anchor_day, interval, today)
    result: list[datetime] = []
    while len(result) < count:
        if end_day is not None and day > end_day:
            break
        result.append(occurrence_instant(event, day, tz))
        day += timedelta(days=interval)
    return result


def retention_cutoff(now: datetime, retention_days: int) -> datetime:
    """Children anchored before this instant are pruned."""
    return as_utc(now) - timedelta(days=retention_days)
