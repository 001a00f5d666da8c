"""
starboard.api.routes.events — Special event endpoints
=======================================================

Member-facing listings and the notification banner feed, plus the
JWT-protected admin CRUD and on-demand occurrence maintenance.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
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
from starboard.database.models import SpecialEvent
from starboard.engine.activation import as_utc, evaluate_activation
from starboard.engine.cache import ConfigCache
from starboard.engine.instances import list_upcoming_occurrences
from starboard.engine.selector import EventFilter
from starboard.services import event_service
from starboard.services.instance_service import run_instance_maintenance

router = APIRouter(tags=["events"])
admin_router = APIRouter(prefix="/admin/events", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class EventCreate(BaseModel):
    name: str
    description: str | None = None
    anchor_date: datetime | date
    start_time: str | None = None
    end_time: str | None = None
    bonus_points: int = Field(0, ge=0)
    is_recurring: bool = False
    recurring_interval_days: int | None = None
    recurring_end_date: datetime | date | None = None
    show_notification: bool = False
    notification_message: str | None = None


class EventUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    anchor_date: datetime | date | None = None
    start_time: str | None = None
    end_time: str | None = None
    bonus_points: int | None = Field(None, ge=0)
    is_recurring: bool | None = None
    recurring_interval_days: int | None = None
    recurring_end_date: datetime | date | None = None
    show_notification: bool | None = None
    notification_message: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _iso(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value else None


def _event_dict(e: SpecialEvent, now: datetime | None = None, tz: ZoneInfo | None = None) -> dict:
    data = {
        "id": e.id,
        "name": e.name,
        "description": e.description,
        "anchor_date": _iso(e.anchor_date),
        "start_time": e.start_time,
        "end_time": e.end_time,
        "bonus_points": e.bonus_points,
        "is_recurring": e.is_recurring,
        "recurring_interval_days": e.recurring_interval_days,
        "recurring_end_date": _iso(e.recurring_end_date),
        "show_notification": e.show_notification,
        "notification_message": e.notification_message,
        "parent_event_id": e.parent_event_id,
    }
    if now is not None and tz is not None:
        activation = evaluate_activation(e, now, tz)
        data["active_today"] = activation.active_today
        data["active_now"] = activation.active_now
    return data


# ---------------------------------------------------------------------------
# Member endpoints
# ---------------------------------------------------------------------------
@router.get("/events")
async def list_events(
    user: Annotated[dict, Depends(get_current_user)],
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
    tz: Annotated[ZoneInfo, Depends(get_timezone)],
    event_filter: Annotated[EventFilter, Query(alias="filter")] = EventFilter.ALL,
):
    """Parent events in one of the all/upcoming/current/past categories."""
    now = datetime.now(UTC)
    events = await run_db_with_timeout(
        event_service.get_events_for_display, engine, event_filter, now, tz,
        timeout=cfg.request_timeout_seconds,
    )
    return {
        "filter": event_filter.value,
        "timezone": tz.key,
        "events": [_event_dict(e, now, tz) for e in events],
    }


@router.get("/events/notifications")
async def list_notifications(
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
    tz: Annotated[ZoneInfo, Depends(get_timezone)],
):
    """Banner messages for events active right now in the caller's zone."""
    now = datetime.now(UTC)
    events = await run_db_with_timeout(
        event_service.get_active_notifications, engine, now, tz,
        timeout=cfg.request_timeout_seconds,
    )
    return {
        "notifications": [
            {
                "event_id": e.id,
                "name": e.name,
                "message": e.notification_message or e.name,
                "bonus_points": e.bonus_points,
            }
            for e in events
        ],
    }


@router.get("/events/{event_id}/occurrences")
async def list_occurrences(
    event_id: str,
    user: Annotated[dict, Depends(get_current_user)],
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
    tz: Annotated[ZoneInfo, Depends(get_timezone)],
    count: int = Query(6, ge=1, le=52),
):
    """Upcoming occurrence dates, computed from the event definition."""
    event = await run_db_with_timeout(
        event_service.get_event, engine, event_id,
        timeout=cfg.request_timeout_seconds,
    )
    dates = list_upcoming_occurrences(event, now=datetime.now(UTC), tz=tz, count=count)
    return {
        "event_id": event.id,
        "timezone": tz.key,
        "occurrences": [d.astimezone(tz).isoformat() for d in dates],
    }


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------
@admin_router.get("")
async def admin_list_events(
    admin: Annotated[dict, Depends(get_current_admin)],
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
):
    events = await run_db_with_timeout(
        event_service.list_parent_events, engine,
        timeout=cfg.request_timeout_seconds,
    )
    return {"events": [_event_dict(e) for e in events]}


@admin_router.post("", status_code=201)
async def create_event(
    body: EventCreate,
    admin: Annotated[dict, Depends(get_current_admin)],
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
):
    event = await run_db_with_timeout(
        event_service.create_event, engine,
        actor_id=str(admin["sub"]),
        **body.model_dump(),
        timeout=cfg.request_timeout_seconds,
    )
    return _event_dict(event)


@admin_router.put("/{event_id}")
async def update_event(
    event_id: str,
    body: EventUpdate,
    admin: Annotated[dict, Depends(get_current_admin)],
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
):
    event = await run_db_with_timeout(
        event_service.update_event, engine, event_id,
        actor_id=str(admin["sub"]),
        **body.model_dump(exclude_unset=True),
        timeout=cfg.request_timeout_seconds,
    )
    return _event_dict(event)


@admin_router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    admin: Annotated[dict, Depends(get_current_admin)],
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
):
    removed = await run_db_with_timeout(
        event_service.delete_event, engine, event_id,
        actor_id=str(admin["sub"]),
        timeout=cfg.request_timeout_seconds,
    )
    return {"deleted": event_id, "occurrences_removed": removed}


@admin_router.post("/maintenance")
async def run_maintenance(
    admin: Annotated[dict, Depends(get_current_admin)],
    engine: Annotated[Engine, Depends(get_engine)],
    cache: Annotated[ConfigCache, Depends(get_cache)],
    cfg: Annotated[StarboardConfig, Depends(get_config)],
    tz: Annotated[ZoneInfo, Depends(get_timezone)],
):
    """Top up and prune recurring occurrences now instead of waiting a day."""
    return await run_db_with_timeout(
        run_instance_maintenance, engine, cache,
        tz=tz,
        actor_id=str(admin["sub"]),
        timeout=cfg.request_timeout_seconds,
    )
