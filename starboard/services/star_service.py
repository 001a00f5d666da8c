"""
starboard.services.star_service — Star Ledger
===============================================

Toggles one member's star on one post or submission.

The toggle is planned from a single read (see
:func:`starboard.engine.stars.plan_star_toggle`) and then applied as three
writes, always in this order and inside one transaction:

  1. the item's ``stars_received``, atomically ±1 and clamped at 0;
  2. the author's ``score``, atomically ±``points_per_star`` and clamped
     at 0 (skipped when the author's profile is gone);
  3. the ``stars`` row that backs the actor's starred set.

A failure at any step rolls back the others.  Two concurrent stars by the
same member collide on the ``stars`` primary key instead of counting
twice; of two concurrent unstars, the one whose ``DELETE`` finds no row
is rejected and rolled back.  Counter drift from any older data is repaired by
:mod:`starboard.services.reconciliation_service`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine, case, delete, select, update

from starboard.database.engine import get_session, store_errors
from starboard.database.models import CONTENT_MODELS, ContentKind, Profile, Star
from starboard.engine.cache import ConfigCache
from starboard.engine.stars import content_noun, plan_star_toggle
from starboard.errors import NotFoundError, StarRejectedError

logger = logging.getLogger(__name__)

DEFAULT_POINTS_PER_STAR = 10


@dataclass(frozen=True, slots=True)
class StarToggleResult:
    starred: bool
    stars_received: int
    author_score: int | None
    starred_submissions: frozenset[str]


def _clamped_add(column, delta: int):
    """``max(0, column + delta)`` evaluated by the database."""
    return case((column + delta < 0, 0), else_=column + delta)


def toggle_star(
    engine: Engine,
    cache: ConfigCache,
    *,
    actor_id: str,
    kind: ContentKind | str,
    content_id: str,
) -> StarToggleResult:
    """Star *content_id* for *actor_id*, or remove the star if present.

    Raises
    ------
    NotFoundError
        The item or the acting member's profile does not exist.
    StarRejectedError
        The item is not approved, the actor wrote it, or the star being
        removed was already gone.
    StoreUnavailableError
        A write failed; nothing was committed.
    """
    kind = ContentKind(kind)
    model = CONTENT_MODELS[kind]
    points_per_star = cache.get_int("scoring.points_per_star", DEFAULT_POINTS_PER_STAR)

    with store_errors("toggle_star"), get_session(engine) as session:
        item = session.get(model, content_id)
        if item is None:
            raise NotFoundError(
                f"{content_noun(kind).capitalize()} not found or error retrieving it."
            )
        actor = session.get(Profile, actor_id)
        if actor is None:
            raise NotFoundError("Current user profile not found.")

        try:
            plan = plan_star_toggle(
                item, actor_id, actor.starred_submissions, points_per_star,
            )
        except StarRejectedError as exc:
            logger.warning(
                "Star toggle by %s on %s %s rejected: %s",
                actor_id, kind, content_id, exc.detail,
            )
            raise

        session.execute(
            update(model)
            .where(model.id == content_id)
            .values(stars_received=_clamped_add(model.stars_received, plan.count_delta))
            .execution_options(synchronize_session=False)
        )

        author_score: int | None = None
        author_rows = session.execute(
            update(Profile)
            .where(Profile.id == plan.author_id)
            .values(score=_clamped_add(Profile.score, plan.score_delta))
            .execution_options(synchronize_session=False)
        ).rowcount
        if author_rows:
            author_score = session.scalar(
                select(Profile.score).where(Profile.id == plan.author_id)
            )
        else:
            logger.warning(
                "Author %s of %s %s has no profile; score not changed",
                plan.author_id, kind, content_id,
            )

        if plan.adding:
            session.add(Star(profile_id=actor_id, content_id=content_id, content_kind=kind.value))
            session.flush()
        else:
            removed = session.execute(
                delete(Star)
                .where(Star.profile_id == actor_id)
                .where(Star.content_id == content_id)
                .execution_options(synchronize_session=False)
            ).rowcount
            if not removed:
                logger.warning(
                    "Unstar by %s on %s %s found no star row; rolling back",
                    actor_id, kind, content_id,
                )
                raise StarRejectedError("Star was already removed.")

        stars_received = session.scalar(
            select(model.stars_received).where(model.id == content_id)
        )

    logger.info(
        "%s %s %s %s (stars=%d, author score=%s)",
        actor_id, "starred" if plan.adding else "unstarred",
        kind, content_id, stars_received, author_score,
    )
    return StarToggleResult(
        starred=plan.adding,
        stars_received=stars_received,
        author_score=author_score,
        starred_submissions=plan.starred_after,
    )
