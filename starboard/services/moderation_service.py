"""
starboard.services.moderation_service — Content Approval & Removal
====================================================================

Admins approve or reject pending posts and submissions.  The transition
to approved is what credits the author (see
:func:`starboard.services.scoring_service.award_points`).

Policy: the approval is committed first and is kept even if the award
then fails.  The failure is logged and reported in the result so the
admin can see it; the item's ``points_awarded_at`` marker stays empty, so
a later approval retry can still credit the author exactly once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, tzinfo

from sqlalchemy import Engine, delete

from starboard.database.engine import get_session, store_errors
from starboard.database.models import CONTENT_MODELS, AdminActionType, ContentKind, Star
from starboard.engine.cache import ConfigCache
from starboard.engine.stars import content_noun
from starboard.errors import ForbiddenError, NotFoundError, StarboardError
from starboard.services.audit import log_admin_action, row_to_dict
from starboard.services.scoring_service import AwardResult, award_points

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ModerationResult:
    content_id: str
    kind: ContentKind
    approved: bool
    award: AwardResult | None = None
    award_error: str | None = None


def moderate_content(
    engine: Engine,
    cache: ConfigCache,
    *,
    kind: ContentKind | str,
    content_id: str,
    approve: bool,
    actor_id: str,
    tz: tzinfo = UTC,
) -> ModerationResult:
    """Set an item's approval state; award points on the move to approved."""
    kind = ContentKind(kind)
    model = CONTENT_MODELS[kind]

    with store_errors("moderate_content"), get_session(engine) as session:
        item = session.get(model, content_id)
        if item is None:
            raise NotFoundError(f"{content_noun(kind).capitalize()} not found.")
        before = row_to_dict(item)
        newly_approved = approve and item.approved is not True
        item.approved = approve
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.MODERATE,
            target_table=model.__tablename__,
            target_id=content_id,
            before=before,
            after=row_to_dict(item),
        )

    logger.info(
        "%s %s %s by %s",
        content_noun(kind).capitalize(), content_id,
        "approved" if approve else "rejected", actor_id,
    )

    if not newly_approved:
        return ModerationResult(content_id=content_id, kind=kind, approved=approve)

    try:
        award = award_points(
            engine,
            cache,
            user_id=item.user_id,
            activity_date=item.submission_date,
            tz=tz,
            content=item,
        )
    except StarboardError as exc:
        logger.error(
            "Approval of %s %s kept, but awarding points to %s failed: %s",
            kind, content_id, item.user_id, exc.detail,
        )
        return ModerationResult(
            content_id=content_id, kind=kind, approved=True, award_error=exc.detail,
        )
    return ModerationResult(content_id=content_id, kind=kind, approved=True, award=award)


def delete_content(
    engine: Engine,
    *,
    kind: ContentKind | str,
    content_id: str,
    actor_id: str,
    as_admin: bool = False,
) -> int:
    """Delete an item (author, or admin) and the stars given to it.

    Scores already credited are left as they are.  Returns the number of
    star rows removed.
    """
    kind = ContentKind(kind)
    model = CONTENT_MODELS[kind]

    with store_errors("delete_content"), get_session(engine) as session:
        item = session.get(model, content_id)
        if item is None:
            raise NotFoundError(f"{content_noun(kind).capitalize()} not found.")
        if not as_admin and item.user_id != actor_id:
            raise ForbiddenError(f"You can only delete your own {content_noun(kind, plural=True)}.")

        before = row_to_dict(item)
        stars_removed = session.execute(
            delete(Star).where(Star.content_id == content_id)
        ).rowcount or 0
        session.delete(item)
        if as_admin:
            log_admin_action(
                session,
                actor_id=actor_id,
                action_type=AdminActionType.DELETE,
                target_table=model.__tablename__,
                target_id=content_id,
                before=before,
            )

    logger.info(
        "%s %s deleted by %s (%d stars removed)",
        content_noun(kind).capitalize(), content_id, actor_id, stars_removed,
    )
    return stars_removed
