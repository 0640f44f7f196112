"""Single-flight download coordination keyed by cache key."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from PIL import Image

logger = logging.getLogger(__name__)

DownloadOperation = Callable[[str, str], Awaitable["Image.Image | None"]]
"""Coroutine function ``(key, url) -> image | None`` run once per in-flight key."""


@dataclass(slots=True)
class CoordinatorStats:
    """Snapshot of coordinator counters."""

    started: int = 0
    joined: int = 0
    failed: int = 0
    in_flight: int = 0


class DownloadCoordinator:
    """Deduplicates concurrent downloads so each key is fetched at most once at a time.

    The first request for a key registers an in-flight task running the
    download operation; requests arriving while it runs await that same task.
    The record is removed when the task finishes, whatever the outcome, so
    failures are never cached and the next request starts a fresh download.

    Waiters are shielded from each other: cancelling one caller does not
    cancel the shared download, which always runs to completion.
    """

    __slots__ = ("_in_flight", "_lock", "_operation", "_stats")

    def __init__(self, operation: DownloadOperation) -> None:
        self._operation = operation
        self._in_flight: dict[str, asyncio.Task[Image.Image | None]] = {}
        self._lock = asyncio.Lock()
        self._stats = CoordinatorStats()

    async def fetch_or_join(self, key: str, url: str) -> Image.Image | None:
        """Return the result of the in-flight download for ``key``, starting one if needed.

        Example
        -------
        >>> coordinator = DownloadCoordinator(download)
        >>> image = await coordinator.fetch_or_join(key, url)
        """
        async with self._lock:
            task = self._in_flight.get(key)
            if task is None:
                task = asyncio.create_task(self._run(key, url), name=f"image-download:{key[:40]}")
                self._in_flight[key] = task
                self._stats.started += 1
                logger.debug("download_started key=%s", key[:40])
            else:
                self._stats.joined += 1
                logger.debug("download_joined key=%s", key[:40])

        return await asyncio.shield(task)

    async def _run(self, key: str, url: str) -> Image.Image | None:
        try:
            result = await self._operation(key, url)
        except Exception:
            logger.exception("download_failed key=%s", key[:40])
            result = None
        finally:
            async with self._lock:
                self._in_flight.pop(key, None)

        if result is None:
            self._stats.failed += 1
        return result

    def is_in_flight(self, key: str) -> bool:
        """Return True while a download for ``key`` is registered."""
        return key in self._in_flight

    async def wait_idle(self) -> None:
        """Wait until every download registered at call time has finished."""
        async with self._lock:
            tasks = list(self._in_flight.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def get_stats(self) -> CoordinatorStats:
        """Return a snapshot of the coordinator counters."""
        return CoordinatorStats(
            started=self._stats.started,
            joined=self._stats.joined,
            failed=self._stats.failed,
            in_flight=len(self._in_flight),
        )
