"""Domain layer: cache keys and the cache failure taxonomy."""

from invcu_image_cache.domain.exceptions import (
    DecodeFailure,
    DiskStoreError,
    FetchError,
    ImageCacheError,
    InvalidURLError,
    NetworkFailure,
    ServerFailure,
)
from invcu_image_cache.domain.value_objects import (
    HASHED_KEY_PREFIX,
    MAX_KEY_LENGTH,
    CacheKey,
    cache_key_for,
)

__all__ = [
    "HASHED_KEY_PREFIX",
    "MAX_KEY_LENGTH",
    "CacheKey",
    "DecodeFailure",
    "DiskStoreError",
    "FetchError",
    "ImageCacheError",
    "InvalidURLError",
    "NetworkFailure",
    "ServerFailure",
    "cache_key_for",
]
