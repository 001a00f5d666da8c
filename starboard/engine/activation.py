"""
starboard.engine.activation — Special Event Activation Evaluator
==================================================================

Pure date/time arithmetic.  No DB I/O: callers pass in event rows (or
anything with the same attributes) plus a reference instant and a zone.

An event is *active today* when the calendar day of ``now`` in the
evaluation zone matches its anchor day, or for recurring events lands on
an interval boundary between the anchor and the optional end date.  It
is *active now* when it is active today and the local wall-clock time
falls inside its optional ``[start_time, end_time]`` window, both ends
inclusive.

There is a single evaluator.  "Server clock" evaluation is the same call
with ``tz`` set to the configured server zone.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from starboard.errors import ValidationError

__all__ = [
    "Activation",
    "EventLike",
    "as_utc",
    "evaluate_activation",
    "is_active_on",
    "local_day",
    "parse_time_of_day",
    "resolve_timezone",
]

_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})(?::(\d{2}))?")


class EventLike(Protocol):
    """Attributes the evaluator reads from an event definition."""

    anchor_date: datetime
    start_time: str | None
    end_time: str | None
    is_recurring: bool
    recurring_interval_days: int | None
    recurring_end_date: datetime | None


@dataclass(frozen=True, slots=True)
class Activation:
    """Result of :func:`evaluate_activation`."""

    active_today: bool
    active_now: bool


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------
def resolve_timezone(name: str | None, default: str = "UTC") -> ZoneInfo:
    """Return the :class:`ZoneInfo` for an IANA *name* (or *default*).

    Raises :class:`ValidationError` for unknown zones.
    """
    key = (name or "").strip() or default
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown timezone: {key}") from exc


def parse_time_of_day(value: str) -> int:
    """Parse ``"HH:MM"`` (or ``"HH:MM:SS"``) into minutes since midnight.

    Seconds are accepted and ignored.
    """
    match = _TIME_RE.fullmatch(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ValidationError(f"Invalid time of day: {value!r} (expected HH:MM)")
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValidationError(f"Invalid time of day: {value!r} (expected HH:MM)")
    return hours * 60 + minutes


def as_utc(instant: datetime) -> datetime:
    """Return *instant* as an aware UTC datetime.

    Naive values are taken to already be UTC (SQLite drops tzinfo).
    """
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def local_day(instant: datetime, tz: tzinfo = UTC) -> date:
    """Calendar date of *instant* as seen in *tz*."""
    return as_utc(instant).astimezone(tz).date()


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------
def is_active_on(event: EventLike, day: date | datetime, tz: tzinfo = UTC) -> bool:
    """Date-only activation check; time-of-day bounds are ignored.

    *day* may be a calendar date, or an instant whose date in *tz* is used.
    """
    if isinstance(day, datetime):
        day = local_day(day, tz)

    anchor_day = local_day(event.anchor_date, tz)
    if not event.is_recurring:
        return day == anchor_day

    interval = event.recurring_interval_days
    if not interval or interval < 1:
        return False
    if day < anchor_day:
        return False
    if event.recurring_end_date is not None and day > local_day(event.recurring_end_date, tz):
        return False
    return (day - anchor_day).days % interval == 0


def evaluate_activation(event: EventLike, now: datetime, tz: tzinfo = UTC) -> Activation:
    """Return whether *event* is active on ``now``'s day and at ``now``."""
    local_now = as_utc(now).astimezone(tz)
    if not is_active_on(event, local_now.date(), tz):
        return Activation(active_today=False, active_now=False)

    if not event.start_time and not event.end_time:
        return Activation(active_today=True, active_now=True)

    now_minutes = local_now.hour * 60 + local_now.minute
    after_start = not event.start_time or now_minutes >= parse_time_of_day(event.start_time)
    before_end = not event.end_time or now_minutes <= parse_time_of_day(event.end_time)
    return Activation(active_today=True, active_now=after_start and before_end)
