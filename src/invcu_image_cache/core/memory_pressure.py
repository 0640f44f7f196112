"""Background memory-pressure monitor.

Polls system memory usage and fires trim callbacks (typically
``ImageCache.trim_memory``) when usage crosses a threshold. This stands in for
the host's low-memory notification: the cache works correctly without it,
just with a memory tier that is only bounded by its own limits.

Key Features:
    - Threshold Detection: Fires once per crossing, rearms when usage drops
    - Background Thread: Polls without blocking the event loop
    - Manual Signal: ``notify()`` fires callbacks on demand
    - Statistics Tracking: Counts checks and trims
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from threading import Event, Lock, Thread

import psutil

logger = logging.getLogger(__name__)

TrimCallback = Callable[[], None]


@dataclass
class PressureStats:
    """Statistics for memory-pressure monitoring."""

    checks: int = 0
    trims: int = 0
    last_usage: float | None = None
    last_trim: float | None = None


class MemoryPressureMonitor:
    """Polls ``psutil.virtual_memory()`` and invokes trim callbacks under pressure.

    Attributes:
        threshold: Fraction of system memory in use (0.0-1.0) that counts as
            pressure.
        check_interval: Seconds between checks when running in background.
        _callbacks: Registered trim callbacks.
        _under_pressure: True between a crossing and the next check below
            threshold.
        _stop_event: Event to signal thread shutdown.
        _thread: Background polling thread.
        _stats: Monitoring statistics.
    """

    def __init__(self, threshold: float = 0.9, check_interval: float = 30.0) -> None:
        if not 0.0 < threshold < 1.0:
            raise ValueError("threshold must be between 0 and 1")
        self.threshold = threshold
        self.check_interval = check_interval
        self._callbacks: list[TrimCallback] = []
        self._lock = Lock()
        self._under_pressure = False
        self._stop_event = Event()
        self._thread: Thread | None = None
        self._stats = PressureStats()

    def add_callback(self, callback: TrimCallback) -> None:
        """Register a callback fired on memory pressure."""
        with self._lock:
            self._callbacks.append(callback)

    @property
    def running(self) -> bool:
        """Whether the background thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start polling in a daemon thread."""
        if self.running:
            logger.warning("Memory pressure monitor already running")
            return

        self._stop_event.clear()
        self._thread = Thread(target=self._run_loop, name="memory-pressure", daemon=True)
        self._thread.start()
        logger.info(
            "Memory pressure monitor started (threshold=%.0f%%, interval=%ss)",
            self.threshold * 100,
            self.check_interval,
        )

    def stop(self) -> None:
        """Stop the polling thread."""
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=5.0)
        self._thread = None
        logger.info("Memory pressure monitor stopped")

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.check()
            except Exception as exc:
                logger.exception("Error checking memory pressure: %s", exc)
            self._stop_event.wait(self.check_interval)

    def _read_usage(self) -> float:
        return psutil.virtual_memory().percent / 100.0

    def check(self) -> bool:
        """Sample memory usage once and fire callbacks on a new crossing.

        Returns:
            True if usage is at or above the threshold.
        """
        usage = self._read_usage()
        with self._lock:
            self._stats.checks += 1
            self._stats.last_usage = usage
            pressured = usage >= self.threshold
            crossed = pressured and not self._under_pressure
            self._under_pressure = pressured

        if crossed:
            logger.warning(
                "Memory pressure: %.1f%% in use (threshold %.0f%%)", usage * 100, self.threshold * 100
            )
            self.notify()
        return pressured

    def notify(self) -> None:
        """Fire every trim callback now. Callback errors are logged."""
        with self._lock:
            callbacks = list(self._callbacks)
            self._stats.trims += 1
            self._stats.last_trim = time.time()

        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Error in memory pressure callback")

    def get_stats(self) -> PressureStats:
        """Get a snapshot of monitoring statistics."""
        with self._lock:
            return replace(self._stats)
