"""
Behavioral tests for domain value objects and exceptions.

Tests focus on cache key derivation: determinism, filesystem safety,
injectivity for distinct URLs, and the hashed fallback for long URLs.
"""

from __future__ import annotations

import pytest

from invcu_image_cache.domain import (
    HASHED_KEY_PREFIX,
    MAX_KEY_LENGTH,
    CacheKey,
    DecodeFailure,
    DiskStoreError,
    FetchError,
    ImageCacheError,
    InvalidURLError,
    NetworkFailure,
    ServerFailure,
    cache_key_for,
)


class TestCacheKey:
    """Behavioral tests for CacheKey derivation."""

    def test_key_is_deterministic(self):
        """Test that the same URL always yields the same key."""
        url = "https://cdn.example.com/items/42.jpg?v=3"

        assert cache_key_for(url) == cache_key_for(url)
        assert CacheKey.from_url(url) == CacheKey.from_url(url)

    def test_alphanumerics_pass_through_and_others_are_escaped(self):
        """Test that only ASCII letters and digits are kept verbatim."""
        assert cache_key_for("https://x/a1.jpg") == "https%3A%2F%2Fx%2Fa1%2Ejpg"

    def test_key_contains_no_path_separators(self):
        """Test that keys are safe to use as file names."""
        key = cache_key_for("https://example.com/a/b/c/../d.png")

        assert "/" not in key
        assert "\\" not in key
        assert key not in {".", ".."}

    def test_distinct_urls_yield_distinct_keys(self):
        """Test that URLs differing only in punctuation do not collide."""
        urls = [
            "https://example.com/a-b.jpg",
            "https://example.com/a_b.jpg",
            "https://example.com/a.b.jpg",
            "https://example.com/a%2Db.jpg",
            "https://example.com/A-b.jpg",
        ]

        keys = {cache_key_for(url) for url in urls}

        assert len(keys) == len(urls)

    def test_non_ascii_urls_are_encoded_per_utf8_byte(self):
        """Test that non-ASCII characters become escaped UTF-8 bytes."""
        key = cache_key_for("é")

        assert key == "%C3%A9"

    def test_empty_url_yields_reserved_key(self):
        """Test that the empty URL maps to a key encoding never produces."""
        assert cache_key_for("") == "%"

    def test_long_url_falls_back_to_digest(self):
        """Test that over-long keys are replaced by a SHA-256 digest."""
        url = "https://example.com/" + "segment/" * 60 + "photo.jpg"

        key = cache_key_for(url)

        assert key.startswith(HASHED_KEY_PREFIX)
        assert len(key) == len(HASHED_KEY_PREFIX) + 64
        assert key == cache_key_for(url)

    def test_key_at_limit_is_not_hashed(self):
        """Test that a key of exactly MAX_KEY_LENGTH is used as-is."""
        url = "a" * MAX_KEY_LENGTH

        assert cache_key_for(url) == url

    def test_str_returns_value(self):
        """Test that str(CacheKey) is the key string."""
        key = CacheKey.from_url("https://x/y.jpg")

        assert str(key) == key.value

    @pytest.mark.parametrize("value", ["", "a/b", ".", ".."])
    def test_unsafe_values_are_rejected(self, value):
        """Test that CacheKey refuses values unusable as file names."""
        with pytest.raises(ValueError):
            CacheKey(value)

    def test_cache_key_is_immutable(self):
        """Test that CacheKey is frozen."""
        key = CacheKey.from_url("https://x/y.jpg")

        with pytest.raises(AttributeError):
            key.value = "other"  # type: ignore[misc]


class TestExceptions:
    """Behavioral tests for the failure taxonomy."""

    def test_hierarchy(self):
        """Test that every failure derives from ImageCacheError."""
        assert issubclass(InvalidURLError, ImageCacheError)
        assert issubclass(NetworkFailure, FetchError)
        assert issubclass(ServerFailure, FetchError)
        assert issubclass(FetchError, ImageCacheError)
        assert issubclass(DecodeFailure, ImageCacheError)
        assert issubclass(DiskStoreError, ImageCacheError)

    def test_server_failure_carries_status(self):
        """Test that ServerFailure exposes the status code and URL."""
        exc = ServerFailure("https://x/y.jpg", 404)

        assert exc.status_code == 404
        assert exc.url == "https://x/y.jpg"
        assert "HTTP 404" in str(exc)

    def test_server_failure_detail_in_message(self):
        """Test that an optional detail is appended to the message."""
        exc = ServerFailure("https://x/y.jpg", 200, "body exceeds 10 bytes")

        assert "body exceeds 10 bytes" in str(exc)

    def test_network_failure_keeps_cause(self):
        """Test that NetworkFailure keeps the underlying error."""
        cause = TimeoutError("timed out")
        exc = NetworkFailure("https://x/y.jpg", cause)

        assert exc.cause is cause
        assert "TimeoutError" in str(exc)

    def test_invalid_url_error_carries_reason(self):
        """Test that InvalidURLError exposes URL and reason."""
        exc = InvalidURLError("ftp://x", "unsupported scheme 'ftp'")

        assert exc.url == "ftp://x"
        assert exc.reason == "unsupported scheme 'ftp'"
