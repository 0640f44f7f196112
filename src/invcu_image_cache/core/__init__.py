"""Core coordination utilities (single-flight downloads, memory pressure)."""

from invcu_image_cache.core.coordinator import CoordinatorStats, DownloadCoordinator
from invcu_image_cache.core.memory_pressure import MemoryPressureMonitor, PressureStats

__all__ = [
    "CoordinatorStats",
    "DownloadCoordinator",
    "MemoryPressureMonitor",
    "PressureStats",
]
