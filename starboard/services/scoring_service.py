"""
starboard.services.scoring_service — Approval Point Awards
============================================================

Credits an author when one of their items is approved:
``base_points`` plus the bonus of the special event active on the item's
date.

Rules:
  - The event lookup is date-only (scoring happens after the fact, so the
    time-of-day window does not apply).  If the lookup fails the award
    goes ahead with no bonus.
  - The score change is a single ``UPDATE ... SET score = score + :n``;
    no read-modify-write.
  - When the award is for a content item, the item's
    ``points_awarded_at`` marker is claimed in the same transaction with
    ``WHERE points_awarded_at IS NULL``.  A repeated approval finds the
    marker taken and credits nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo

from sqlalchemy import Engine, select, update

from starboard.database.engine import get_session, store_errors
from starboard.database.models import (
    CONTENT_MODELS,
    ContentKind,
    Post,
    Profile,
    SpecialEvent,
    Submission,
)
from starboard.engine.cache import ConfigCache
from starboard.engine.scoring import AwardBreakdown, calculate_award
from starboard.errors import NotFoundError
from starboard.services.event_service import get_active_event_for_date

logger = logging.getLogger(__name__)

DEFAULT_BASE_POINTS = 50


@dataclass(frozen=True, slots=True)
class AwardResult:
    """Outcome of :func:`award_points`."""

    new_score: int
    breakdown: AwardBreakdown
    duplicate: bool = False


def resolve_bonus_event(
    engine: Engine, activity_date: datetime, tz: tzinfo = UTC,
) -> SpecialEvent | None:
    """Active event for *activity_date*, or ``None`` if the lookup fails."""
    try:
        return get_active_event_for_date(engine, activity_date, tz)
    except Exception:
        logger.exception(
            "Event lookup failed for %s; awarding without bonus",
            activity_date.isoformat(),
        )
        return None


def award_points(
    engine: Engine,
    cache: ConfigCache,
    *,
    user_id: str,
    activity_date: datetime,
    base_points: int | None = None,
    tz: tzinfo = UTC,
    content: Post | Submission | None = None,
) -> AwardResult:
    """Add base points plus any event bonus to *user_id*'s score.

    Raises
    ------
    NotFoundError
        If the profile does not exist.  Nothing is written.
    StoreUnavailableError
        If the write fails.  Nothing is written.
    """
    if base_points is None:
        base_points = cache.get_int("scoring.base_points", DEFAULT_BASE_POINTS)

    event = resolve_bonus_event(engine, activity_date, tz)
    breakdown = calculate_award(base_points, event)

    with store_errors("award_points"), get_session(engine) as session:
        if content is not None:
            model = CONTENT_MODELS[ContentKind(content.kind)]
            claimed = session.execute(
                update(model)
                .where(model.id == content.id)
                .where(model.points_awarded_at.is_(None))
                .values(points_awarded_at=datetime.now(UTC))
                .execution_options(synchronize_session=False)
            ).rowcount
            if not claimed:
                current = session.scalar(select(Profile.score).where(Profile.id == user_id))
                if current is None:
                    raise NotFoundError("User profile not found.")
                logger.warning(
                    "Points for %s %s were already awarded; skipping",
                    content.kind, content.id,
                )
                return AwardResult(new_score=current, breakdown=breakdown, duplicate=True)

        updated = session.execute(
            update(Profile)
            .where(Profile.id == user_id)
            .values(score=Profile.score + breakdown.total)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not updated:
            raise NotFoundError("User profile not found.")
        new_score = session.scalar(select(Profile.score).where(Profile.id == user_id))

    logger.info(
        "Awarded %d points to %s (base=%d, bonus=%d, event=%s) → score %d",
        breakdown.total, user_id, breakdown.base, breakdown.bonus,
        breakdown.event_name or "-", new_score,
    )
    return AwardResult(new_score=new_score, breakdown=breakdown)
