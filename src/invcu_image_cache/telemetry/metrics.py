"""Metrics collection for image cache operations.

This module provides in-memory metrics for network fetches and other timed
cache operations.

Key behaviors:
    - In-memory storage with automatic size limiting (max 10,000 metrics)
    - Time-window filtering for recent metrics analysis
    - Statistical calculations (percentiles, averages)
    - Class-level storage guarded by a lock (fetches complete on the event
      loop, disk work on executor threads)
"""

from __future__ import annotations

import logging
import statistics
import threading
import time
from collections import Counter
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, ClassVar, Self

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FetchMetrics:
    """Metrics for a single cache operation.

    Attributes:
        operation: Operation type (e.g., "network_fetch", "decode").
        latency_ms: Operation latency in milliseconds (>=0.0).
        success: Whether the operation succeeded.
        error: Error type if the operation failed. None if successful.
        size_bytes: Payload size in bytes, when known.
        timestamp: Operation timestamp in UTC.
    """

    operation: str
    latency_ms: float
    success: bool
    error: str | None = None
    size_bytes: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(slots=True)
class CacheServiceMetrics:
    """Aggregated cache operation metrics.

    Attributes:
        total_operations: Number of operations in the aggregation window.
        successful_operations: Number of successful operations.
        failed_operations: Number of failed operations.
        operations_by_type: Operation type -> count.
        total_bytes: Sum of payload sizes of successful operations.
        average_latency_ms: Average latency in milliseconds.
        p50_latency_ms: Median latency in milliseconds.
        p95_latency_ms: 95th percentile latency in milliseconds.
        errors_by_type: Error type -> occurrence count.
        last_operation_time: Timestamp of most recent operation.
    """

    total_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    operations_by_type: dict[str, int] = field(default_factory=dict)
    total_bytes: int = 0
    average_latency_ms: float = 0.0
    p50_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    errors_by_type: dict[str, int] = field(default_factory=dict)
    last_operation_time: datetime | None = None


class MetricsCollector:
    """Collects and aggregates metrics for cache operations.

    Attributes:
        _metrics: Class variable storing list of FetchMetrics.
        _max_metrics: Maximum number of metrics to retain (default: 10,000).
    """

    _metrics: ClassVar[list[FetchMetrics]] = []
    _max_metrics: ClassVar[int] = 10_000
    _lock: ClassVar[threading.Lock] = threading.Lock()

    @classmethod
    def record(
        cls,
        operation: str,
        latency_ms: float,
        success: bool,
        error: str | None = None,
        size_bytes: int = 0,
    ) -> None:
        """Record one operation metric, trimming the oldest beyond the limit."""
        metric = FetchMetrics(
            operation=operation,
            latency_ms=latency_ms,
            success=success,
            error=error,
            size_bytes=size_bytes,
            timestamp=datetime.now(UTC),
        )
        with cls._lock:
            cls._metrics.append(metric)
            if len(cls._metrics) > cls._max_metrics:
                cls._metrics = cls._metrics[-cls._max_metrics :]

        logger.debug("Recorded metric: %s - %.2fms success=%s", operation, latency_ms, success)

    @classmethod
    def get_metrics(cls, window_minutes: int | None = None) -> CacheServiceMetrics:
        """Get aggregated metrics, optionally restricted to a recent window.

        Args:
            window_minutes: Time window in minutes. If None, aggregates all
                metrics.

        Returns:
            CacheServiceMetrics. Empty if nothing was recorded in the window.
        """
        with cls._lock:
            snapshot = list(cls._metrics)

        match window_minutes:
            case None:
                metrics = snapshot
            case minutes if minutes > 0:
                cutoff = datetime.now(UTC) - timedelta(minutes=minutes)
                metrics = [m for m in snapshot if m.timestamp >= cutoff]
            case _:
                metrics = []

        if not metrics:
            return CacheServiceMetrics()

        latencies = sorted(m.latency_ms for m in metrics)
        successful = sum(1 for m in metrics if m.success)

        match len(latencies):
            case n if n >= 2:
                quantiles = statistics.quantiles(latencies, n=100)
                p50 = quantiles[49]
                p95 = quantiles[94]
            case _:
                p50 = p95 = latencies[0]

        return CacheServiceMetrics(
            total_operations=len(metrics),
            successful_operations=successful,
            failed_operations=len(metrics) - successful,
            operations_by_type=dict(Counter(m.operation for m in metrics)),
            total_bytes=sum(m.size_bytes for m in metrics if m.success),
            average_latency_ms=sum(latencies) / len(latencies),
            p50_latency_ms=p50,
            p95_latency_ms=p95,
            errors_by_type=dict(Counter(m.error for m in metrics if m.error)),
            last_operation_time=max(m.timestamp for m in metrics),
        )

    @classmethod
    def get_metrics_json(cls, window_minutes: int | None = None) -> dict[str, Any]:
        """Get metrics as a JSON-serializable dictionary."""
        metrics = cls.get_metrics(window_minutes)
        return {
            "total_operations": metrics.total_operations,
            "successful_operations": metrics.successful_operations,
            "failed_operations": metrics.failed_operations,
            "operations_by_type": metrics.operations_by_type,
            "total_bytes": metrics.total_bytes,
            "average_latency_ms": round(metrics.average_latency_ms, 2),
            "p50_latency_ms": round(metrics.p50_latency_ms, 2),
            "p95_latency_ms": round(metrics.p95_latency_ms, 2),
            "errors_by_type": metrics.errors_by_type,
            "last_operation_time": (
                metrics.last_operation_time.isoformat() if metrics.last_operation_time else None
            ),
        }

    @classmethod
    def reset(cls) -> Self:
        """Reset all collected metrics."""
        with cls._lock:
            cls._metrics = []
        return cls


@contextmanager
def track_operation(operation: str) -> Generator[None, None, None]:
    """Context manager recording the latency and outcome of an operation.

    Example:
        >>> with track_operation("disk_clear"):
        ...     disk_store.clear()
    """
    start = time.perf_counter()
    error: str | None = None
    try:
        yield
    except Exception as exc:
        error = exc.__class__.__name__
        raise
    finally:
        MetricsCollector.record(
            operation=operation,
            latency_ms=(time.perf_counter() - start) * 1000,
            success=error is None,
            error=error,
        )


__all__ = ["CacheServiceMetrics", "FetchMetrics", "MetricsCollector", "track_operation"]
