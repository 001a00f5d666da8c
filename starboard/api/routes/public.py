"""
starboard.api.routes.public — Read-only public endpoints
==========================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Engine

from starboard.api.deps import get_config, get_engine
from starboard.config import StarboardConfig
from starboard.database.engine import run_db_with_timeout
from starboard.services.leaderboard_service import MAX_PAGE_SIZE, get_leaderboard

router = APIRouter(tags=["public"])


# ---------------------------------------------------------------------------
# GET /leaderboard
# ---------------------------------------------------------------------------
@router.get("/leaderboard")
async def leaderboard(
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
):
    """Members by score, highest first; ties broken by name."""
    rows = await run_db_with_timeout(
        get_leaderboard, engine, limit, offset, timeout=cfg.request_timeout_seconds,
    )
    return {
        "community": cfg.community_name,
        "limit": limit,
        "offset": offset,
        "entries": rows,
    }
