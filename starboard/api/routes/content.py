"""
starboard.api.routes.content — Stars, moderation and removal
==============================================================

``{kind}`` is ``posts`` or ``submissions``; both tables behave the same.
"""

from __future__ import annotations

import enum
from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import Engine

from starboard.api.deps import (
    get_cache,
    get_config,
    get_current_admin,
    get_current_user,
    get_engine,
    get_timezone,
)
from starboard.config import StarboardConfig
from starboard.database.engine import run_db_with_timeout
from starboard.database.models import ContentKind
from starboard.engine.cache import ConfigCache
from starboard.services.moderation_service import delete_content, moderate_content
from starboard.services.reconciliation_service import reconcile_star_counts
from starboard.services.star_service import toggle_star

router = APIRouter(tags=["content"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


class ContentPath(enum.StrEnum):
    POSTS = "posts"
    SUBMISSIONS = "submissions"

    @property
    def kind(self) -> ContentKind:
        return ContentKind.POST if self is ContentPath.POSTS else ContentKind.SUBMISSION


class ModerateBody(BaseModel):
    approve: bool


# ---------------------------------------------------------------------------
# Member endpoints
# ---------------------------------------------------------------------------
@router.post("/{kind}/{content_id}/star")
async def star_content(
    kind: ContentPath,
    content_id: str,
    user: Annotated[dict, Depends(get_current_user)],
    engine: Annotated[Engine, Depends(get_engine)],
    cache: Annotated[ConfigCache, Depends(get_cache)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
):
    """Toggle the caller's star on an approved item."""
    result = await run_db_with_timeout(
        toggle_star, engine, cache,
        actor_id=str(user["sub"]),
        kind=kind.kind,
        content_id=content_id,
        timeout=cfg.request_timeout_seconds,
    )
    return {
        "starred": result.starred,
        "stars_received": result.stars_received,
        "author_score": result.author_score,
        "starred_submissions": sorted(result.starred_submissions),
    }


@router.delete("/{kind}/{content_id}")
async def delete_own_content(
    kind: ContentPath,
    content_id: str,
    user: Annotated[dict, Depends(get_current_user)],
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
):
    stars_removed = await run_db_with_timeout(
        delete_content, engine,
        kind=kind.kind,
        content_id=content_id,
        actor_id=str(user["sub"]),
        timeout=cfg.request_timeout_seconds,
    )
    return {"deleted": content_id, "stars_removed": stars_removed}


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------
@admin_router.post("/stars/reconcile")
async def reconcile_stars(
    admin: Annotated[dict, Depends(get_current_admin)],
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
):
    """Recount ``stars_received`` for every item from the stars table."""
    return await run_db_with_timeout(
        reconcile_star_counts, engine,
        actor_id=str(admin["sub"]),
        timeout=cfg.request_timeout_seconds,
    )


@admin_router.post("/{kind}/{content_id}/moderate")
async def moderate(
    kind: ContentPath,
    content_id: str,
    body: ModerateBody,
    admin: Annotated[dict, Depends(get_current_admin)],
    engine: Annotated[Engine, Depends(get_engine)],
    cache: Annotated[ConfigCache, Depends(get_cache)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
    tz: Annotated[ZoneInfo, Depends(get_timezone)],
):
    """Approve or reject an item.  Approval credits the author once."""
    result = await run_db_with_timeout(
        moderate_content, engine, cache,
        kind=kind.kind,
        content_id=content_id,
        approve=body.approve,
        actor_id=str(admin["sub"]),
        tz=tz,
        timeout=cfg.request_timeout_seconds,
    )
    award = None
    if result.award is not None:
        award = {
            "base": result.award.breakdown.base,
            "bonus": result.award.breakdown.bonus,
            "total": result.award.breakdown.total,
            "event_id": result.award.breakdown.event_id,
            "event_name": result.award.breakdown.event_name,
            "new_score": result.award.new_score,
            "duplicate": result.award.duplicate,
        }
    return {
        "id": result.content_id,
        "approved": result.approved,
        "award": award,
        "award_error": result.award_error,
    }


@admin_router.delete("/{kind}/{content_id}")
async def admin_delete_content(
    kind: ContentPath,
    content_id: str,
    admin: Annotated[dict, Depends(get_current_admin)],
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
):
    stars_removed = await run_db_with_timeout(
        delete_content, engine,
        kind=kind.kind,
        content_id=content_id,
        actor_id=str(admin["sub"]),
        as_admin=True,
        timeout=cfg.request_timeout_seconds,
    )
    return {"deleted": content_id, "stars_removed": stars_removed}
