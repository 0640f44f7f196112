"""Value objects for the InvCU image cache.

Key Value Objects:
    - CacheKey: Filesystem-safe key derived deterministically from a URL
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

MAX_KEY_LENGTH = 200
"""Longest percent-encoded key used as-is (keeps file names under OS limits)."""

HASHED_KEY_PREFIX = "sha256-"


def _percent_encode(url: str) -> str:
    # Every byte that is not an ASCII letter or digit is escaped, so the
    # encoded form only ever contains [A-Za-z0-9%].
    parts: list[str] = []
    for byte in url.encode("utf-8"):
        char = chr(byte)
        if char.isascii() and char.isalnum():
            parts.append(char)
        else:
            parts.append(f"%{byte:02X}")
    return "".join(parts)


@dataclass(slots=True, frozen=True)
class CacheKey:
    """Value object representing the cache key of an image URL.

    The key is the URL with every non-alphanumeric byte percent-encoded.
    Encoded keys longer than MAX_KEY_LENGTH fall back to a SHA-256 digest
    prefixed with ``sha256-``; the hyphen never appears in an encoded key,
    so both forms share one namespace without collisions.

    Attributes:
        value: The derived key string. Safe to use as a file name.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Cache key cannot be empty")
        if "/" in self.value or self.value in {".", ".."}:
            raise ValueError(f"Cache key is not filesystem-safe: {self.value!r}")

    @classmethod
    def from_url(cls, url: str) -> CacheKey:
        """Derive the cache key for ``url``.

        Pure and stable: the same URL always yields the same key.
        """
        encoded = _percent_encode(url)
        if not encoded:
            # A lone "%" is never produced by encoding, so it cannot collide.
            encoded = "%"
        if len(encoded) > MAX_KEY_LENGTH:
            digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
            return cls(f"{HASHED_KEY_PREFIX}{digest}")
        return cls(encoded)

    def __str__(self) -> str:
        return self.value


def cache_key_for(url: str) -> str:
    """Return the cache key string for ``url``."""
    return CacheKey.from_url(url).value
