"""
starboard.api.main — FastAPI application entry point
======================================================

Run with::

    uvicorn starboard.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

load_dotenv()

from starboard.api.deps import get_engine  # noqa: E402
from starboard.api.routes.content import admin_router as content_admin_router  # noqa: E402
from starboard.api.routes.content import router as content_router  # noqa: E402
from starboard.api.routes.events import admin_router as events_admin_router  # noqa: E402
from starboard.api.routes.events import router as events_router  # noqa: E402
from starboard.api.routes.public import router as public_router  # noqa: E402
from starboard.api.routes.settings import admin_router as settings_admin_router  # noqa: E402
from starboard.errors import StarboardError, StoreUnavailableError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine."""
    engine = get_engine()
    logger.info("Starboard API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Starboard API shutting down")


app = FastAPI(
    title="Starboard API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
@app.exception_handler(StarboardError)
async def starboard_error_handler(request: Request, exc: StarboardError):
    if exc.status_code >= 500:
        logger.error("%s %s → %d: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": StoreUnavailableError.detail},
    )


# Mount routers (admin event and settings routes first: /admin/events/{id}
# must not be read as /admin/{kind}/{id}).
app.include_router(events_router, prefix="/api")
app.include_router(events_admin_router, prefix="/api")
app.include_router(settings_admin_router, prefix="/api")
app.include_router(content_admin_router, prefix="/api")
app.include_router(content_router, prefix="/api")
app.include_router(public_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
