"""
starboard.engine.selector — Active Event Selection
====================================================

Every caller that needs "the event for this date" or "the banners to show
now" goes through these functions.  They work on an already-fetched list
of event rows; :mod:`starboard.services.event_service` does the fetching.

Generated child occurrences are never eligible: activation is always
computed from the parent definition.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from datetime import UTC, date, datetime, tzinfo
from typing import TypeVar

from starboard.engine.activation import as_utc, evaluate_activation, is_active_on, local_day
from starboard.errors import ValidationError

__all__ = [
    "EventFilter",
    "filter_events",
    "list_active_notifications",
    "parents_only",
    "pick_active_event_for_date",
]

E = TypeVar("E")


class EventFilter(enum.StrEnum):
    """Public listing categories."""
    ALL = "all"
    UPCOMING = "upcoming"
    CURRENT = "current"
    PAST = "past"


def parents_only(events: Iterable[E]) -> list[E]:
    return [e for e in events if getattr(e, "parent_event_id", None) is None]


def pick_active_event_for_date(
    events: Iterable[E], day: date | datetime, tz: tzinfo = UTC,
) -> E | None:
    """Return the event whose bonus applies on *day*, or ``None``.

    A non-recurring event matching the date outranks any recurring match;
    among equals the first in input order wins.
    """
    recurring_match = None
    for event in parents_only(events):
        if not is_active_on(event, day, tz):
            continue
        if not event.is_recurring:
            return event
        if recurring_match is None:
            recurring_match = event
    return recurring_match


def list_active_notifications(
    events: Iterable[E], now: datetime, tz: tzinfo = UTC,
) -> list[E]:
    """Events flagged for a banner that are active at *now* (input order)."""
    return [
        e for e in parents_only(events)
        if e.show_notification and evaluate_activation(e, now, tz).active_now
    ]


def filter_events(
    events: Iterable[E],
    event_filter: EventFilter | str,
    now: datetime,
    tz: tzinfo = UTC,
) -> list[E]:
    """Split parent events into the public listing categories.

    ``all`` is sorted by anchor date, newest first; the other filters keep
    that order.  A recurring event that is running right now is never
    listed as past.
    """
    try:
        event_filter = EventFilter(event_filter)
    except ValueError as exc:
        raise ValidationError(f"Unknown event filter: {event_filter}") from exc
    today = local_day(now, tz)
    ordered = sorted(
        parents_only(events),
        key=lambda e: as_utc(e.anchor_date),
        reverse=True,
    )

    if event_filter is EventFilter.ALL:
        return ordered
    if event_filter is EventFilter.UPCOMING:
        return [e for e in ordered if local_day(e.anchor_date, tz) > today]
    if event_filter is EventFilter.CURRENT:
        return [e for e in ordered if evaluate_activation(e, now, tz).active_now]
    return [
        e for e in ordered
        if local_day(e.anchor_date, tz) < today
        and not (e.is_recurring and evaluate_activation(e, now, tz).active_now)
    ]
