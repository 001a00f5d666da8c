"""
starboard.api.routes.settings — Gameplay settings (admin)
===========================================================
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import Engine

from starboard.api.deps import get_cache, get_config, get_current_admin, get_engine
from starboard.config import StarboardConfig
from starboard.database.engine import run_db_with_timeout
from starboard.engine.cache import ConfigCache
from starboard.services import settings_service

admin_router = APIRouter(prefix="/admin/settings", tags=["admin"])


class SettingUpdate(BaseModel):
    value: Any


@admin_router.get("")
async def list_settings(
    admin: Annotated[dict, Depends(get_current_admin)],
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
):
    rows = await run_db_with_timeout(
        settings_service.list_settings, engine,
        timeout=cfg.request_timeout_seconds,
    )
    return {"settings": rows}


@admin_router.put("/{key}")
async def update_setting(
    key: str,
    body: SettingUpdate,
    admin: Annotated[dict, Depends(get_current_admin)],
    engine: Annotated[Engine, Depends(get_engine)],
    cache: Annotated[ConfigCache, Depends(get_cache)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
):
    """Change one setting; the cache is reloaded before this returns."""
    return await run_db_with_timeout(
        settings_service.update_setting, engine, cache,
        key=key,
        value=body.value,
        actor_id=str(admin["sub"]),
        timeout=cfg.request_timeout_seconds,
    )
