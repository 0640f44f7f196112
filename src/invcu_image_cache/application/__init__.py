"""Application layer: the cache facade and its consumer-side loader."""

from invcu_image_cache.application.image_cache import ImageCache
from invcu_image_cache.application.image_loader import CachedImageLoader, LoadState
from invcu_image_cache.application.interfaces import (
    ByteFetcherInterface,
    DiskStoreInterface,
    ImageCodecInterface,
    ImageSourceInterface,
    MemoryStoreInterface,
)

__all__ = [
    "ByteFetcherInterface",
    "CachedImageLoader",
    "DiskStoreInterface",
    "ImageCache",
    "ImageCodecInterface",
    "ImageSourceInterface",
    "LoadState",
    "MemoryStoreInterface",
]
