"""InvCU image cache - two-tier (memory + disk) cache for item photos."""

from invcu_image_cache.application import CachedImageLoader, ImageCache, LoadState
from invcu_image_cache.client import ByteFetcher, FetcherSettings
from invcu_image_cache.container import (
    build_image_cache,
    build_memory_pressure_monitor,
    image_cache_lifespan,
)
from invcu_image_cache.core import DownloadCoordinator, MemoryPressureMonitor
from invcu_image_cache.domain import (
    CacheKey,
    DecodeFailure,
    DiskStoreError,
    ImageCacheError,
    InvalidURLError,
    NetworkFailure,
    ServerFailure,
    cache_key_for,
)
from invcu_image_cache.infrastructure import DiskStore, ImageCodec, MemoryStore, Settings, get_settings
from invcu_image_cache.telemetry import MetricsCollector

__all__ = [
    "ByteFetcher",
    "CacheKey",
    "CachedImageLoader",
    "DecodeFailure",
    "DiskStore",
    "DiskStoreError",
    "DownloadCoordinator",
    "FetcherSettings",
    "ImageCache",
    "ImageCacheError",
    "ImageCodec",
    "InvalidURLError",
    "LoadState",
    "MemoryPressureMonitor",
    "MemoryStore",
    "MetricsCollector",
    "NetworkFailure",
    "ServerFailure",
    "Settings",
    "build_image_cache",
    "build_memory_pressure_monitor",
    "cache_key_for",
    "get_settings",
    "image_cache_lifespan",
]
