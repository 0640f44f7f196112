"""Persistent disk tier of the image cache.

Images are stored as JPEG files in a flat directory, one file per cache key.
There is no index file: the presence of ``<cache_dir>/<key>`` is the index,
which works because keys are derived deterministically from URLs.

All methods are synchronous file I/O. The cache facade runs writes on a
background executor so callers never wait on disk latency.
"""

from __future__ import annotations

import contextlib
import logging
import shutil
import threading
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

from invcu_image_cache.domain.exceptions import DecodeFailure, DiskStoreError
from invcu_image_cache.infrastructure.image_codec import ImageCodec

if TYPE_CHECKING:
    from PIL import Image

logger = logging.getLogger(__name__)

_TMP_MARKER = ".tmp."


class DiskStore:
    """Flat-directory JPEG store addressed by cache key.

    Attributes:
        directory: Cache directory. Created on initialization and on clear().
        codec: ImageCodec used to encode on save and decode on load.
    """

    def __init__(self, directory: Path, codec: ImageCodec | None = None) -> None:
        self.directory = Path(directory)
        self.codec = codec or ImageCodec()
        self._stats_lock = threading.Lock()
        self._reads = 0
        self._writes = 0
        self._write_failures = 0
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Could not create image cache directory %s: %s", self.directory, exc)

    def path_for(self, key: str) -> Path:
        """Return the file path holding the entry for ``key``."""
        return self.directory / key

    def contains(self, key: str) -> bool:
        """Return True if an entry file exists for ``key``."""
        return self.path_for(key).is_file()

    def encode(self, image: Image.Image) -> bytes:
        """Encode ``image`` as JPEG.

        Raises:
            DiskStoreError: If the image cannot be encoded.
        """
        try:
            return self.codec.encode_jpeg(image)
        except (OSError, ValueError) as exc:
            self._record_write(success=False)
            raise DiskStoreError(f"Failed to encode image: {exc}") from exc

    def save(self, key: str, image: Image.Image) -> None:
        """Encode ``image`` as JPEG and write it under ``key``.

        Raises:
            DiskStoreError: If encoding or writing fails. The entry is left
                absent.
        """
        self.save_bytes(key, self.encode(image))

    def save_bytes(self, key: str, payload: bytes) -> None:
        """Atomically write an encoded payload under ``key``.

        The payload goes to a temporary name first and is renamed into place,
        so a concurrent load never observes a partial file. Rewriting an
        existing key replaces it with an equivalent image.

        Raises:
            DiskStoreError: If the write fails.
        """
        cache_path = self.path_for(key)
        tmp_path = cache_path.with_name(f".{cache_path.name}{_TMP_MARKER}{uuid4().hex}")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(payload)
            tmp_path.replace(cache_path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            self._record_write(success=False)
            raise DiskStoreError(f"Failed to write {cache_path}: {exc}") from exc

        self._record_write(success=True)
        logger.debug("Saved %d bytes to disk cache: %s", len(payload), key[:40])

    def load_bytes(self, key: str) -> bytes | None:
        """Return the stored payload for ``key``, or None if absent/unreadable."""
        with self._stats_lock:
            self._reads += 1
        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Failed to read disk cache entry %s: %s", key[:40], exc)
            return None

    def load(self, key: str) -> Image.Image | None:
        """Load and decode the entry for ``key``.

        Returns:
            The decoded image, or None if the file does not exist, cannot be
            read or fails to decode. Never raises.
        """
        data = self.load_bytes(key)
        if data is None:
            return None
        try:
            return self.codec.decode(data)
        except DecodeFailure as exc:
            logger.warning("Corrupt disk cache entry %s: %s", key[:40], exc)
            return None

    def total_size(self) -> int:
        """Sum the sizes of all files under the cache directory in bytes."""
        if not self.directory.exists():
            return 0
        size = 0
        for path in self.directory.rglob("*"):
            try:
                if path.is_file():
                    size += path.stat().st_size
            except OSError:
                continue
        return size

    def entry_count(self) -> int:
        """Number of complete cache entries on disk."""
        if not self.directory.exists():
            return 0
        return sum(
            1 for path in self.directory.iterdir() if path.is_file() and _TMP_MARKER not in path.name
        )

    def clear(self) -> None:
        """Remove the cache directory and recreate it empty."""
        try:
            shutil.rmtree(self.directory)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove image cache directory %s: %s", self.directory, exc)
        self._ensure_directory()
        logger.info("Disk image cache cleared: %s", self.directory)

    def _record_write(self, *, success: bool) -> None:
        with self._stats_lock:
            if success:
                self._writes += 1
            else:
                self._write_failures += 1

    def get_stats(self) -> dict[str, int]:
        """Get disk store counters (reads, writes, write_failures)."""
        with self._stats_lock:
            return {
                "reads": self._reads,
                "writes": self._writes,
                "write_failures": self._write_failures,
            }
