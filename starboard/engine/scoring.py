"""
starboard.engine.scoring — Approval Award Calculation
=======================================================

Pure calculation: base points for an approved item plus the bonus of the
special event active on the item's date.  No DB I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

__all__ = ["AwardBreakdown", "calculate_award"]


class BonusEvent(Protocol):
    id: str
    name: str
    bonus_points: int


@dataclass(frozen=True, slots=True)
class AwardBreakdown:
    """How an approval award was composed."""

    base: int
    bonus: int
    total: int
    event_id: str | None = None
    event_name: str | None = None


def calculate_award(base_points: int, event: BonusEvent | None) -> AwardBreakdown:
    """``base_points`` plus the event bonus (0 without an event).

    Negative bonuses are treated as 0.
    """
    if event is None:
        return AwardBreakdown(base=base_points, bonus=0, total=base_points)
    bonus = max(0, event.bonus_points or 0)
    return AwardBreakdown(
        base=base_points,
        bonus=bonus,
        total=base_points + bonus,
        event_id=event.id,
        event_name=event.name,
    )
