"""Telemetry utilities (metrics, structured logging)."""

from invcu_image_cache.telemetry.metrics import (
    CacheServiceMetrics,
    FetchMetrics,
    MetricsCollector,
    track_operation,
)
from invcu_image_cache.telemetry.structured_logging import log_cache_event

__all__ = [
    "CacheServiceMetrics",
    "FetchMetrics",
    "MetricsCollector",
    "log_cache_event",
    "track_operation",
]
