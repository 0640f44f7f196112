"""Construction and lifecycle of the shared image cache.

The app uses one ImageCache for its whole lifetime. Rather than reaching it
through a global, the host builds it here at startup and passes it to every
consumer.

Usage:
    async with image_cache_lifespan() as cache:
        loader = CachedImageLoader(cache, item.image_url)
        await loader.load()

Lifespan Responsibilities:
    - Startup:
        1. Load settings (TOML + defaults)
        2. Build fetcher, codec, memory store and disk store
        3. Wire them into the ImageCache facade
        4. Start the memory-pressure monitor if enabled
    - Shutdown:
        1. Stop the monitor
        2. Wait for in-flight downloads and disk writes, close the HTTP client
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from invcu_image_cache.application.image_cache import ImageCache
from invcu_image_cache.client.fetcher import ByteFetcher, FetcherSettings
from invcu_image_cache.core.memory_pressure import MemoryPressureMonitor
from invcu_image_cache.infrastructure.config import Settings, get_settings
from invcu_image_cache.infrastructure.disk_store import DiskStore
from invcu_image_cache.infrastructure.image_codec import ImageCodec
from invcu_image_cache.infrastructure.memory_store import MemoryStore

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)


def build_fetcher(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> ByteFetcher:
    """Create the byte fetcher from the ``[fetcher]`` settings."""
    cfg = settings.fetcher
    return ByteFetcher(
        FetcherSettings(
            timeout=cfg.timeout,
            connect_timeout=cfg.connect_timeout,
            max_connections=cfg.max_connections,
            max_keepalive_connections=cfg.max_keepalive_connections,
            max_concurrent_requests=cfg.max_concurrent_requests,
            max_response_bytes=cfg.max_response_bytes,
            user_agent=cfg.user_agent,
            transport=transport,
        )
    )


def build_image_cache(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ImageCache:
    """Build an ImageCache wired from settings.

    Args:
        settings: Settings to use. Default: get_settings().
        transport: Optional httpx transport for the fetcher.

    Returns:
        A ready-to-use ImageCache. The caller owns it and must close it.
    """
    settings = settings or get_settings()
    codec = ImageCodec(jpeg_quality=settings.disk.jpeg_quality)
    cache = ImageCache(
        fetcher=build_fetcher(settings, transport),
        memory_store=MemoryStore(
            count_limit=settings.memory.count_limit,
            cost_limit=settings.memory.cost_limit_bytes,
        ),
        disk_store=DiskStore(settings.disk.directory, codec=codec),
        codec=codec,
        disk_write_workers=settings.disk.write_workers,
    )
    logger.info(
        "Image cache initialized (memory: %d images / %d MiB, disk: %s)",
        settings.memory.count_limit,
        settings.memory.cost_limit_bytes // (1024 * 1024),
        settings.disk.directory,
    )
    return cache


def build_memory_pressure_monitor(
    settings: Settings, cache: ImageCache
) -> MemoryPressureMonitor | None:
    """Create a monitor that trims ``cache`` under pressure, or None if disabled."""
    cfg = settings.memory_pressure
    if not cfg.enabled:
        return None
    monitor = MemoryPressureMonitor(threshold=cfg.threshold, check_interval=cfg.check_interval)
    monitor.add_callback(cache.trim_memory)
    return monitor


@asynccontextmanager
async def image_cache_lifespan(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[ImageCache]:
    """Build the cache and its monitor, yield the cache, then shut both down."""
    settings = settings or get_settings()
    cache = build_image_cache(settings, transport=transport)
    monitor = build_memory_pressure_monitor(settings, cache)
    if monitor is not None:
        monitor.start()

    try:
        yield cache
    finally:
        if monitor is not None:
            monitor.stop()
        await cache.aclose()
        logger.info("Image cache shut down")


__all__ = [
    "build_fetcher",
    "build_image_cache",
    "build_memory_pressure_monitor",
    "image_cache_lifespan",
]
