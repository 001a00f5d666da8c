"""
starboard.maintenance — Periodic Background Jobs
==================================================

Entry point for ``python -m starboard.maintenance``.

Scheduled jobs:

- **Occurrence maintenance** — every 24 hours, tops up generated
  occurrences of recurring events and prunes old ones.
- **Star reconciliation** — every 7 days, validates ``stars_received``
  against the ``stars`` table and corrects drift.

Each job runs through ``run_db()`` so it never blocks the event loop.  A
failed run is logged and the loop waits for its next tick.

Wiring:
1. Load .env (secrets).
2. Load config.yaml (server timezone).
3. Create the SQLAlchemy engine, ensure tables exist, seed settings.
4. Warm the ConfigCache.
5. Run both loops until interrupted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from dotenv import load_dotenv
from sqlalchemy import Engine

from starboard.config import StarboardConfig, load_config
from starboard.database.engine import create_db_engine, init_db, run_db
from starboard.engine.activation import resolve_timezone
from starboard.engine.cache import ConfigCache
from starboard.services.instance_service import run_instance_maintenance
from starboard.services.reconciliation_service import reconcile_star_counts

logger = logging.getLogger(__name__)

INSTANCE_INTERVAL_HOURS = 24
RECONCILIATION_INTERVAL_HOURS = 168


class MaintenanceRunner:
    """Owns the periodic jobs for one engine/cache pair."""

    def __init__(self, cfg: StarboardConfig, engine: Engine, cache: ConfigCache) -> None:
        self.cfg = cfg
        self.engine = engine
        self.cache = cache
        self.tz = resolve_timezone(cfg.server_timezone)

    # -------------------------------------------------------------------
    # Single runs
    # -------------------------------------------------------------------
    async def instance_tick(self) -> dict | None:
        """Refresh settings, then top up and prune occurrences."""
        try:
            await run_db(self.cache.reload)
            result = await run_db(
                run_instance_maintenance, self.engine, self.cache, tz=self.tz,
            )
            logger.info(
                "Occurrence task complete: %d created, %d pruned, %d failed",
                result["created"], result["pruned"], len(result["failed"]),
            )
            return result
        except Exception:
            logger.exception("Occurrence task failed", extra={"task": "instances"})
            return None

    async def reconciliation_tick(self) -> dict | None:
        """Validate star counters and fix drift."""
        try:
            result = await run_db(reconcile_star_counts, self.engine)
            logger.info(
                "Reconciliation task complete: checked=%d corrected=%d",
                result["checked"], result["corrected"],
            )
            return result
        except Exception:
            logger.exception("Reconciliation task failed", extra={"task": "reconciliation"})
            return None

    # -------------------------------------------------------------------
    # Loops
    # -------------------------------------------------------------------
    @staticmethod
    async def _every(hours: float, job: Callable[[], Awaitable[object]]) -> None:
        while True:
            await job()
            await asyncio.sleep(hours * 3600)

    async def run_forever(self) -> None:
        await asyncio.gather(
            self._every(INSTANCE_INTERVAL_HOURS, self.instance_tick),
            self._every(RECONCILIATION_INTERVAL_HOURS, self.reconciliation_tick),
        )


def main() -> None:
    """Bootstrap and run the maintenance loops."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )

    load_dotenv()
    cfg = load_config()
    logger.info(
        "Config loaded — Community: %s (server timezone %s)",
        cfg.community_name, cfg.server_timezone,
    )

    engine = create_db_engine()
    init_db(engine)

    cache = ConfigCache(engine)
    cache.load_all()

    runner = MaintenanceRunner(cfg, engine, cache)
    logger.info("Starting maintenance loops…")
    try:
        asyncio.run(runner.run_forever())
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
