"""
starboard.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for **infrastructure-only** settings (community
identity, server timezone, request timeout, API port).  Gameplay tuning
values (base points, points per star, instance maintenance knobs) live in
the ``settings`` database table and are read through
:class:`~starboard.engine.cache.ConfigCache`.

Usage::

    from starboard.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.server_timezone)       # "Europe/Rome"
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 12.0


# ---------------------------------------------------------------------------
# Typed settings object — infrastructure/identity only.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class StarboardConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    community_name: str

    # IANA zone used whenever a caller does not supply one (the
    # "server clock" path of the activation evaluator).
    server_timezone: str = "UTC"

    # Advisory wait for API calls; expiry reports a timeout but does not
    # cancel writes already in flight.
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS

    api_port: int = 8000


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> StarboardConfig:
    """Read *path* and return a :class:`StarboardConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to the
        ``STARBOARD_CONFIG`` env var, then ``config.yaml`` in the current
        working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If ``server_timezone`` is not a known IANA zone or the timeout
        is not positive.
    """
    config_path = Path(path or os.getenv("STARBOARD_CONFIG", DEFAULT_CONFIG_PATH))
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    server_timezone = str(raw.get("server_timezone") or "UTC")
    try:
        ZoneInfo(server_timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown server_timezone: {server_timezone!r}") from exc

    timeout = float(raw.get("request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS))
    if timeout <= 0:
        raise ValueError("request_timeout_seconds must be positive")

    return StarboardConfig(
        community_name=raw["community_name"],
        server_timezone=server_timezone,
        request_timeout_seconds=timeout,
        api_port=int(raw.get("api_port", 8000)),
    )
