"""Infrastructure layer for the InvCU image cache.

Contains:
- Configuration (Settings and its sections)
- Image codec (Pillow decode/encode)
- Memory and disk stores
"""

from invcu_image_cache.infrastructure.config import Settings, get_settings
from invcu_image_cache.infrastructure.disk_store import DiskStore
from invcu_image_cache.infrastructure.image_codec import ImageCodec, image_cost
from invcu_image_cache.infrastructure.memory_store import MemoryStore

__all__ = [
    "DiskStore",
    "ImageCodec",
    "MemoryStore",
    "Settings",
    "get_settings",
    "image_cost",
]
