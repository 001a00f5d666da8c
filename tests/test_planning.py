"""
tests/test_planning — Award, star toggle and occurrence planning
==================================================================
The pure halves of scoring, starring and instance maintenance.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from starboard.database.models import ContentKind
from starboard.engine.instances import (
    list_upcoming_occurrences,
    occurrence_instant,
    plan_top_up,
    retention_cutoff,
)
from starboard.engine.scoring import calculate_award
from starboard.engine.stars import content_noun, plan_star_toggle
from starboard.errors import StarRejectedError


def _d(month: int, day: int, hour: int = 0) -> datetime:
    return datetime(2024, month, day, hour, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------
class TestCalculateAward:
    def test_without_event(self):
        award = calculate_award(50, None)
        assert (award.base, award.bonus, award.total) == (50, 0, 50)
        assert award.event_id is None

    def test_with_event(self):
        event = SimpleNamespace(id="ev1", name="Double Day", bonus_points=20)
        award = calculate_award(50, event)
        assert award.total == 70
        assert award.event_name == "Double Day"

    def test_negative_bonus_counts_as_zero(self):
        event = SimpleNamespace(id="ev1", name="Broken", bonus_points=-5)
        assert calculate_award(50, event).total == 50


# ---------------------------------------------------------------------------
# Stars
# ---------------------------------------------------------------------------
def _item(**overrides):
    fields = dict(id="p1", user_id="author", approved=True,
                  stars_received=3, kind=ContentKind.POST)
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestPlanStarToggle:
    """plan_star_toggle() decides direction and deltas."""

    def test_adding(self):
        plan = plan_star_toggle(_item(), "fan", set(), points_per_star=10)
        assert plan.adding is True
        assert plan.count_delta == 1
        assert plan.score_delta == 10
        assert plan.expected_stars_received == 4
        assert plan.starred_after == frozenset({"p1"})
        assert plan.author_id == "author"

    def test_removing(self):
        plan = plan_star_toggle(_item(), "fan", {"p1", "p9"}, points_per_star=10)
        assert plan.adding is False
        assert plan.score_delta == -10
        assert plan.expected_stars_received == 2
        assert plan.starred_after == frozenset({"p9"})

    def test_removing_from_zero_counter_clamps(self):
        plan = plan_star_toggle(_item(stars_received=0), "fan", {"p1"}, points_per_star=10)
        assert plan.expected_stars_received == 0

    @pytest.mark.parametrize("approved", [None, False])
    def test_unapproved_rejected(self, approved):
        with pytest.raises(StarRejectedError, match="approved posts"):
            plan_star_toggle(_item(approved=approved), "fan", set(), 10)

    def test_self_star_rejected(self):
        with pytest.raises(StarRejectedError, match="your own post"):
            plan_star_toggle(_item(), "author", set(), 10)

    def test_submission_wording(self):
        item = _item(kind=ContentKind.SUBMISSION)
        with pytest.raises(StarRejectedError, match="your own submission"):
            plan_star_toggle(item, "author", set(), 10)
        assert content_noun(ContentKind.SUBMISSION, plural=True) == "submissions"


# ---------------------------------------------------------------------------
# Occurrences
# ---------------------------------------------------------------------------
def _weekly(**overrides):
    fields = dict(
        anchor_date=_d(1, 1, 18),
        start_time=None,
        end_time=None,
        is_recurring=True,
        recurring_interval_days=7,
        recurring_end_date=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestPlanTopUp:
    """plan_top_up() at 2024-03-01; weekly from Monday 2024-01-01."""

    NOW = _d(3, 1, 12)

    def _days(self, instants):
        return [i.date().isoformat() for i in instants]

    def test_fills_from_today_skipping_past(self):
        planned = plan_top_up(_weekly(), [], now=self.NOW)
        assert self._days(planned) == [
            "2024-03-04", "2024-03-11", "2024-03-18",
            "2024-03-25", "2024-04-01", "2024-04-08",
        ]
        assert all(p.hour == 18 for p in planned)

    def test_continues_after_existing_children(self):
        existing = [_d(3, 4, 18), _d(3, 11, 18)]
        planned = plan_top_up(_weekly(), existing, now=self.NOW)
        assert self._days(planned) == ["2024-03-18", "2024-03-25", "2024-04-01", "2024-04-08"]

    def test_enough_children_means_nothing_to_do(self):
        existing = [_d(3, 4) + timedelta(days=7 * k) for k in range(6)]
        assert plan_top_up(_weekly(), existing, now=self.NOW) == []

    def test_past_children_do_not_count(self):
        existing = [_d(2, 19, 18), _d(2, 26, 18)]
        assert len(plan_top_up(_weekly(), existing, now=self.NOW)) == 6

    def test_horizon_caps_batch(self):
        planned = plan_top_up(_weekly(), [], now=self.NOW, min_future=20, horizon=3)
        assert len(planned) == 3

    def test_stops_at_end_date(self):
        parent = _weekly(recurring_end_date=_d(3, 20))
        assert self._days(plan_top_up(parent, [], now=self.NOW)) == [
            "2024-03-04", "2024-03-11", "2024-03-18",
        ]

    def test_non_recurring_plans_nothing(self):
        assert plan_top_up(_weekly(is_recurring=False), [], now=self.NOW) == []

    def test_local_time_kept_across_dst(self):
        rome = ZoneInfo("Europe/Rome")
        # 18:00 UTC is 19:00 in Rome in winter; after 31 March that is 17:00 UTC.
        instant = occurrence_instant(_weekly(), _d(4, 1).date(), rome)
        assert instant == _d(4, 1, 17)


class TestUpcomingOccurrences:
    NOW = _d(3, 1, 12)

    def test_recurring(self):
        result = list_upcoming_occurrences(_weekly(), now=self.NOW, count=3)
        assert result == [_d(3, 4, 18), _d(3, 11, 18), _d(3, 18, 18)]

    def test_today_included(self):
        parent = _weekly(anchor_date=_d(2, 23, 9))
        assert list_upcoming_occurrences(parent, now=self.NOW, count=1) == [_d(3, 1, 9)]

    def test_non_recurring(self):
        future = _weekly(is_recurring=False, anchor_date=_d(3, 5))
        past = _weekly(is_recurring=False, anchor_date=_d(2, 5))
        assert list_upcoming_occurrences(future, now=self.NOW) == [_d(3, 5)]
        assert list_upcoming_occurrences(past, now=self.NOW) == []

    def test_retention_cutoff(self):
        assert retention_cutoff(self.NOW, 30) == self.NOW - timedelta(days=30)
