"""Centralized configuration management for the InvCU image cache.

This module provides a single source of truth for all configuration values,
using TOML config files with pydantic validation.

Configuration Loading:
    1. Reads the file named by ``$INVCU_IMAGE_CACHE_CONFIG`` or config.toml in
       the project root (if it exists)
    2. Falls back to defaults for anything not set
    3. Validates all values using Pydantic

Configuration Sections:
    - MemoryCacheConfig: Memory store count and byte-cost limits
    - DiskCacheConfig: Disk store location, JPEG quality and writer pool size
    - FetcherConfig: HTTP client configuration for the byte fetcher
    - MemoryPressureConfig: System memory polling for automatic trims

Usage:
    from invcu_image_cache.infrastructure.config import get_settings

    settings = get_settings()
    count_limit = settings.memory.count_limit
    cache_dir = settings.disk.directory
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

CONFIG_ENV_VAR = "INVCU_IMAGE_CACHE_CONFIG"

MiB = 1024 * 1024


def _default_cache_dir() -> Path:
    return Path.home() / ".cache" / "invcu" / "ImageCache"


class MemoryCacheConfig(BaseModel):
    """Memory store limits."""

    count_limit: int = Field(
        default=200, ge=1, le=10000, description="Max number of decoded images held in memory"
    )
    cost_limit_bytes: int = Field(
        default=100 * MiB,
        ge=1 * MiB,
        le=1024 * MiB,
        description="Max cumulative decoded bitmap size in bytes",
    )


class DiskCacheConfig(BaseModel):
    """Disk store configuration."""

    directory: Path = Field(
        default_factory=_default_cache_dir, description="Directory holding cached images"
    )
    jpeg_quality: int = Field(default=90, ge=85, le=90, description="JPEG quality for disk copies")
    write_workers: int = Field(
        default=1, ge=1, le=8, description="Background threads performing disk writes"
    )

    @field_validator("directory")
    @classmethod
    def expand_directory(cls, v: Path) -> Path:
        """Expand ``~`` in the configured directory."""
        return Path(v).expanduser()


class FetcherConfig(BaseModel):
    """HTTP byte fetcher configuration."""

    timeout: float = Field(default=30.0, ge=1.0, le=600.0, description="Read timeout (seconds)")
    connect_timeout: float = Field(
        default=10.0, ge=0.5, le=120.0, description="Connect timeout (seconds)"
    )
    max_connections: int = Field(default=20, ge=1, le=1000, description="Max HTTP connections")
    max_keepalive_connections: int = Field(
        default=10, ge=1, le=500, description="Max keep-alive connections"
    )
    max_concurrent_requests: int | None = Field(
        default=None, ge=1, description="Max concurrent fetches (None = unlimited)"
    )
    max_response_bytes: int = Field(
        default=20 * MiB, ge=1024, le=512 * MiB, description="Largest accepted image body"
    )
    user_agent: str = Field(default="invcu-image-cache/1.0", description="User-Agent header")


class MemoryPressureConfig(BaseModel):
    """System memory polling configuration."""

    enabled: bool = Field(default=False, description="Poll system memory and trim on pressure")
    threshold: float = Field(
        default=0.9, ge=0.5, le=0.99, description="Fraction of system memory in use that trims"
    )
    check_interval: float = Field(
        default=30.0, ge=1.0, le=3600.0, description="Seconds between memory checks"
    )


class Settings(BaseModel):
    """Root settings class containing all configuration sections."""

    memory: MemoryCacheConfig = Field(default_factory=MemoryCacheConfig)
    disk: DiskCacheConfig = Field(default_factory=DiskCacheConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    memory_pressure: MemoryPressureConfig = Field(default_factory=MemoryPressureConfig)

    @classmethod
    def from_toml(cls, config_path: Path | None = None) -> Settings:
        """Load settings from TOML file.

        Args:
            config_path: Path to a TOML file. If None, uses
                ``$INVCU_IMAGE_CACHE_CONFIG`` or config.toml in project root.

        Returns:
            Settings instance populated from TOML file, or default settings
            if no path was given and the project-root config.toml is absent.

        Raises:
            ValueError: If an explicitly named file (argument or environment
                variable) does not exist, or the TOML file is invalid or
                contains validation errors.
        """
        explicit = True
        if config_path is None:
            env_path = os.environ.get(CONFIG_ENV_VAR)
            if env_path:
                config_path = Path(env_path)
            else:
                # Project root (assumes this file is in src/invcu_image_cache/infrastructure/)
                config_path = Path(__file__).parent.parent.parent.parent / "config.toml"
                explicit = False

        if not Path(config_path).exists():
            if explicit:
                msg = f"Failed to load config from {config_path}: file not found"
                raise ValueError(msg)
            return cls()

        try:
            with Path(config_path).open("rb") as f:
                config_data = tomllib.load(f)

            return cls(
                memory=MemoryCacheConfig(**config_data.get("memory", {})),
                disk=DiskCacheConfig(**config_data.get("disk", {})),
                fetcher=FetcherConfig(**config_data.get("fetcher", {})),
                memory_pressure=MemoryPressureConfig(**config_data.get("memory_pressure", {})),
            )
        except Exception as exc:
            msg = f"Failed to load config from {config_path}: {exc}"
            raise ValueError(msg) from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_toml()


__all__ = [
    "DiskCacheConfig",
    "FetcherConfig",
    "MemoryCacheConfig",
    "MemoryPressureConfig",
    "Settings",
    "get_settings",
]
