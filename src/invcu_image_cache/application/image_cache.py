"""Two-tier image cache facade.

This module provides ImageCache, the single entry point used by every screen
that shows an item photo. Lookups go memory -> disk -> network; a network
result is decoded, stored in memory immediately and written to disk in the
background.

Key Features:
    - Synchronous lookup: ``get_cached`` never touches the network
    - Single-flight fetch: concurrent ``fetch_image`` calls for one URL share
      a single download (DownloadCoordinator)
    - Best-effort preload of many URLs at once
    - Invalidation that also discards writes and downloads started before it
    - Memory-pressure trim hook

Failure Semantics:
    Every failure (invalid URL, network, server status, undecodable bytes,
    disk I/O) is logged and absorbed here. Callers only ever see an image or
    None and are expected to show a placeholder for None.

Lifecycle:
    Build one instance at startup (see ``invcu_image_cache.container.build_image_cache``)
    and pass it to consumers. Close it with ``aclose()`` or ``async with``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import types
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from invcu_image_cache.client.fetcher import validate_image_url
from invcu_image_cache.core.coordinator import DownloadCoordinator
from invcu_image_cache.domain.exceptions import (
    DecodeFailure,
    DiskStoreError,
    FetchError,
    InvalidURLError,
)
from invcu_image_cache.domain.value_objects import cache_key_for
from invcu_image_cache.infrastructure.image_codec import ImageCodec
from invcu_image_cache.telemetry.metrics import MetricsCollector, track_operation
from invcu_image_cache.telemetry.structured_logging import log_cache_event

if TYPE_CHECKING:
    from PIL import Image

    from invcu_image_cache.application.interfaces import (
        ByteFetcherInterface,
        DiskStoreInterface,
        ImageCodecInterface,
        MemoryStoreInterface,
    )

logger = logging.getLogger(__name__)


class ImageCache:
    """Memory + disk image cache with deduplicated network population.

    Attributes:
        _fetcher: Byte fetcher used on a full miss.
        _memory: Fast tier, bounded and LRU-evicting.
        _disk: Persistent tier, written in the background.
        _codec: Decoder for fetched bytes.
        _coordinator: Single-flight registry of in-flight downloads.
        _disk_executor: Bounded thread pool running disk writes.
        _disk_lock: Serializes disk writes against clear().
        _generation: Bumped by invalidate_all(); work started under an older
            generation is not stored.
        _pending_writes: Disk write futures not yet finished.
    """

    def __init__(
        self,
        fetcher: ByteFetcherInterface,
        memory_store: MemoryStoreInterface,
        disk_store: DiskStoreInterface,
        codec: ImageCodecInterface | None = None,
        *,
        disk_write_workers: int = 1,
    ) -> None:
        """Initialize the cache.

        Args:
            fetcher: Remote byte fetcher.
            memory_store: In-memory tier.
            disk_store: On-disk tier.
            codec: Decoder for fetched bytes. Default: ImageCodec().
            disk_write_workers: Threads in the disk write pool. Default: 1.
        """
        self._fetcher = fetcher
        self._memory = memory_store
        self._disk = disk_store
        self._codec = codec or ImageCodec()
        self._coordinator = DownloadCoordinator(self._download)
        self._disk_executor = ThreadPoolExecutor(
            max_workers=disk_write_workers, thread_name_prefix="image-cache-disk"
        )
        self._disk_lock = threading.Lock()
        self._pending_lock = threading.Lock()
        self._pending_writes: set[Future[None]] = set()
        self._generation = 0
        self._closed = False

    async def __aenter__(self) -> ImageCache:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_cached(self, url: str) -> Image.Image | None:
        """Return the cached image for ``url`` without touching the network.

        Checks memory first, then disk. A disk hit is promoted into memory so
        the next lookup is served from memory.

        Returns:
            The decoded image, or None on a miss.
        """
        key = cache_key_for(url)

        image = self._memory.get(key)
        if image is not None:
            return image

        image = self._disk.load(key)
        if image is not None:
            logger.debug("Cache hit (disk): %s", url[-40:])
            self._memory.put(key, image)
            return image

        return None

    async def fetch_image(self, url: str) -> Image.Image | None:
        """Return the image for ``url``, downloading and caching it on a miss.

        Concurrent calls for the same URL share one download. Failures are
        not cached: the next call after a failure tries the network again.
        After aclose() only already-cached images are returned.

        Returns:
            The decoded image, or None if it could not be obtained.
        """
        cached = self.get_cached(url)
        if cached is not None:
            return cached

        if self._closed:
            logger.debug("Cache closed; not downloading %s", url[-60:])
            return None

        try:
            validate_image_url(url)
        except InvalidURLError as exc:
            logger.warning("%s", exc)
            return None

        return await self._coordinator.fetch_or_join(cache_key_for(url), url)

    async def preload(self, urls: Iterable[str]) -> int:
        """Fetch every URL concurrently, best effort.

        Waits until all fetches have finished; a failed URL never cancels the
        others and is not reported individually.

        Returns:
            Number of URLs that resolved to an image.
        """
        url_list = list(urls)
        if not url_list:
            return 0

        start = time.perf_counter()
        results = await asyncio.gather(
            *(self.fetch_image(url) for url in url_list), return_exceptions=True
        )
        loaded = sum(1 for result in results if result is not None and not isinstance(result, BaseException))
        for result in results:
            if isinstance(result, BaseException):
                logger.error("Unexpected preload error: %r", result)

        logger.info(
            "Preloaded %d/%d images in %.1fms",
            loaded,
            len(url_list),
            (time.perf_counter() - start) * 1000,
        )
        return loaded

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_image(self, url: str, image: Image.Image) -> None:
        """Store ``image`` for ``url``: memory now, disk in the background."""
        key = cache_key_for(url)
        self._memory.put(key, image)
        self._schedule_disk_write(key, image, self._generation)

    def invalidate_all(self) -> None:
        """Clear memory and disk.

        Disk writes queued before the call and downloads still in flight do
        not repopulate the cache afterwards.
        """
        with track_operation("invalidate_all"), self._disk_lock:
            self._generation += 1
            self._memory.clear()
            self._disk.clear()

        log_cache_event({"event": "cache_invalidated", "generation": self._generation})
        logger.info("Image cache invalidated")

    def trim_memory(self) -> None:
        """Drop every memory entry. Disk is unaffected."""
        entries = len(self._memory)
        self._memory.clear()
        log_cache_event({"event": "memory_trimmed", "entries": entries})
        logger.info("Memory image cache trimmed (%d entries dropped)", entries)

    # ------------------------------------------------------------------
    # Diagnostics & lifecycle
    # ------------------------------------------------------------------

    def disk_size(self) -> int:
        """Total size of the disk cache in bytes."""
        return self._disk.total_size()

    def get_stats(self) -> dict[str, Any]:
        """Get a snapshot of cache statistics."""
        coordinator = self._coordinator.get_stats()
        with self._pending_lock:
            pending = len(self._pending_writes)
        return {
            "memory": self._memory.get_stats(),
            "downloads": {
                "started": coordinator.started,
                "joined": coordinator.joined,
                "failed": coordinator.failed,
                "in_flight": coordinator.in_flight,
            },
            "disk_size_bytes": self.disk_size(),
            "pending_disk_writes": pending,
            "generation": self._generation,
        }

    async def wait_for_pending_writes(self) -> None:
        """Wait until every disk write scheduled so far has finished."""
        with self._pending_lock:
            futures = list(self._pending_writes)
        if futures:
            await asyncio.gather(*(asyncio.wrap_future(f) for f in futures), return_exceptions=True)

    async def aclose(self) -> None:
        """Finish in-flight work and release resources. Safe to call twice."""
        if self._closed:
            return
        await self._coordinator.wait_idle()
        await self.wait_for_pending_writes()
        self._closed = True
        self._disk_executor.shutdown(wait=True)
        await self._fetcher.close()
        logger.debug("Image cache closed")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _download(self, key: str, url: str) -> Image.Image | None:
        """Fetch, decode and store one image. Run once per in-flight key."""
        generation = self._generation

        try:
            data = await self._fetcher.fetch(url)
        except InvalidURLError as exc:
            logger.warning("%s", exc)
            return None
        except FetchError as exc:
            logger.warning("Image download failed for %s: %s", url[-60:], exc)
            return None

        start = time.perf_counter()
        try:
            image = await asyncio.to_thread(self._codec.decode, data)
        except DecodeFailure as exc:
            MetricsCollector.record(
                operation="decode",
                latency_ms=(time.perf_counter() - start) * 1000,
                success=False,
                error="DecodeFailure",
            )
            log_cache_event(
                {
                    "event": "image_decode",
                    "status": "error",
                    "url_key": key,
                    "bytes": len(data),
                    "error_message": str(exc),
                }
            )
            logger.warning("Downloaded bytes for %s are not an image: %s", url[-60:], exc)
            return None

        MetricsCollector.record(
            operation="decode",
            latency_ms=(time.perf_counter() - start) * 1000,
            success=True,
            size_bytes=len(data),
        )

        if generation != self._generation:
            logger.info("Cache invalidated during download of %s; result not stored", url[-60:])
            return image

        self._memory.put(key, image)
        self._schedule_disk_write(key, image, generation)
        logger.debug("Downloaded and cached %s (%dx%d)", url[-60:], *image.size)
        return image

    def _schedule_disk_write(self, key: str, image: Image.Image, generation: int) -> None:
        if self._closed:
            logger.debug("Cache closed; skipping disk write for %s", key[:40])
            return
        future = self._disk_executor.submit(self._write_to_disk, key, image, generation)
        with self._pending_lock:
            self._pending_writes.add(future)
        future.add_done_callback(self._discard_pending)

    def _discard_pending(self, future: Future[None]) -> None:
        with self._pending_lock:
            self._pending_writes.discard(future)

    def _write_to_disk(self, key: str, image: Image.Image, generation: int) -> None:
        """Encode and persist one entry. Runs on the disk executor."""
        try:
            payload = self._disk.encode(image)
            with self._disk_lock:
                if generation != self._generation:
                    logger.debug("Dropping stale disk write for %s", key[:40])
                    return
                self._disk.save_bytes(key, payload)
        except DiskStoreError as exc:
            logger.warning("Disk cache write failed for %s: %s", key[:40], exc)
        except Exception:
            logger.exception("Unexpected disk cache write failure for %s", key[:40])
