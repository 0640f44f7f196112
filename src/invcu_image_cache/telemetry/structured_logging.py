"""Structured logging utilities for the image cache.

This module provides JSON-based structured logging for cache events (network
fetches, invalidations, memory trims). All events are written in JSON Lines
format to a log file for easy parsing and analysis.

Log File Configuration:
    - Location: ``logs/cache_events.jsonl`` relative to the project root, or
      the directory named by ``$INVCU_LOG_DIR``
    - Format: JSON Lines (one JSON object per line)
    - Rotation: Not implemented

Event Schema:
    All events should include:
        - event: Event type identifier (e.g., "image_fetch", "cache_invalidated")
        - timestamp: ISO 8601 timestamp (auto-injected if missing)
        - Additional fields: url_key, status, latency_ms, error_type, ...
"""

from __future__ import annotations

import functools
import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

LOG_DIR_ENV_VAR = "INVCU_LOG_DIR"


@functools.cache
def _get_logs_dir() -> Path:
    """Get logs directory, creating it if it doesn't exist.

    Returns:
        ``$INVCU_LOG_DIR`` if set, else ``logs/`` in the project root.
    """
    override = os.environ.get(LOG_DIR_ENV_VAR)
    logs_dir = Path(override) if override else Path(__file__).resolve().parents[3] / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


CACHE_EVENT_LOGGER = logging.getLogger("invcu.cache_events")
if not CACHE_EVENT_LOGGER.handlers:
    CACHE_EVENT_LOGGER.setLevel(logging.INFO)
    try:
        handler: logging.Handler = logging.FileHandler(_get_logs_dir() / "cache_events.jsonl")
    except OSError:
        # Read-only install location; events are dropped rather than failing imports.
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    CACHE_EVENT_LOGGER.addHandler(handler)
    CACHE_EVENT_LOGGER.propagate = False


def _json_default(value: Any) -> Any:
    """Fallback serializer for datetime and Path objects."""
    match value:
        case datetime():
            return TypeAdapter(datetime).dump_python(value, mode="json")
        case Path():
            return str(value)
        case _:
            return str(value)


def log_cache_event(event: dict[str, Any]) -> None:
    """Emit a structured cache event.

    Writes a JSON-formatted entry to the cache events log. Injects a
    timestamp if the event has none (mutates the input dict).

    Args:
        event: Event payload dictionary. Should contain:
            - event: str - Event type identifier
            - status: str - "success" or "error" where applicable
            - Additional fields as needed (url_key, latency_ms, bytes,
              error_type, error_message, status_code)

    Example:
        >>> log_cache_event({
        ...     "event": "image_fetch",
        ...     "status": "success",
        ...     "url_key": "https%3A%2F%2Fx%2Fimg1%2Ejpg",
        ...     "latency_ms": 42.1,
        ... })
    """
    event.setdefault("timestamp", datetime.now(UTC).isoformat())
    CACHE_EVENT_LOGGER.info(json.dumps(event, default=_json_default))


__all__ = ["log_cache_event"]
