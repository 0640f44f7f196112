"""Asynchronous byte fetcher for remote item images.

This module provides the network leaf of the image cache: one HTTP GET per
call, with the response validated and returned as raw bytes. Failures are
raised as typed domain exceptions; there is no retry at this layer.

Key behaviors:
    - Uses httpx.AsyncClient with connection pooling and keep-alive
    - Validates URLs before any network activity
    - Optional semaphore limits concurrent fetches
    - Caps response body size
    - Records metrics and a structured event for every fetch

Concurrency:
    - Safe for concurrent use from multiple async tasks on one event loop
"""

from __future__ import annotations

import asyncio
import logging
import time
import types
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

try:
    import httpx
except ImportError as exc:  # pragma: no cover
    msg = "httpx is required for image fetching. Install with: pip install httpx"
    raise ImportError(msg) from exc

from invcu_image_cache.domain.exceptions import InvalidURLError, NetworkFailure, ServerFailure
from invcu_image_cache.domain.value_objects import cache_key_for
from invcu_image_cache.telemetry.metrics import MetricsCollector
from invcu_image_cache.telemetry.structured_logging import log_cache_event

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset({"http", "https"})


@dataclass(slots=True, frozen=True)
class FetcherSettings:
    """Configuration for the byte fetcher.

    Immutable configuration object. All time values are in seconds.

    Attributes:
        timeout: Read timeout for image downloads (default: 30).
        connect_timeout: Connection timeout (default: 10).
        max_connections: Maximum connections in the pool (default: 20).
        max_keepalive_connections: Maximum keep-alive connections (default: 10).
        max_concurrent_requests: Maximum concurrent fetches (None = unlimited).
        max_response_bytes: Largest accepted body (default: 20 MiB).
        user_agent: User-Agent header sent with every request.
        transport: Custom httpx transport (None = default network transport).
    """

    timeout: float = 30.0
    connect_timeout: float = 10.0
    max_connections: int = 20
    max_keepalive_connections: int = 10
    max_concurrent_requests: int | None = None
    max_response_bytes: int = 20 * 1024 * 1024
    user_agent: str = "invcu-image-cache/1.0"
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)


def validate_image_url(url: str) -> httpx.URL:
    """Parse ``url`` and ensure it is an absolute http(s) URL.

    Raises:
        InvalidURLError: If the URL is empty, unparseable, relative or uses
            another scheme.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidURLError(str(url), "empty URL")
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise InvalidURLError(url, str(exc)) from exc
    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise InvalidURLError(url, f"unsupported scheme {parsed.scheme!r}")
    if not parsed.host:
        raise InvalidURLError(url, "missing host")
    return parsed


class ByteFetcher:
    """Fetches raw image bytes over HTTP(S).

    Can be used as an async context manager for automatic cleanup.

    Attributes:
        settings: Fetcher configuration (FetcherSettings).
        client: httpx.AsyncClient instance (initialized lazily).
        _semaphore: Optional asyncio.Semaphore for concurrency control.
    """

    __slots__ = ("_semaphore", "client", "settings")

    def __init__(self, settings: FetcherSettings | None = None) -> None:
        self.settings = settings or FetcherSettings()
        self.client: httpx.AsyncClient | None = None
        self._semaphore: asyncio.Semaphore | None = None
        if self.settings.max_concurrent_requests:
            self._semaphore = asyncio.Semaphore(self.settings.max_concurrent_requests)

    async def __aenter__(self) -> ByteFetcher:
        self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        """Create the httpx client on first use."""
        if self.client is None:
            timeout = httpx.Timeout(
                connect=self.settings.connect_timeout,
                read=self.settings.timeout,
                write=self.settings.connect_timeout,
                pool=self.settings.connect_timeout,
            )
            limits = httpx.Limits(
                max_keepalive_connections=self.settings.max_keepalive_connections,
                max_connections=self.settings.max_connections,
            )
            self.client = httpx.AsyncClient(
                timeout=timeout,
                limits=limits,
                follow_redirects=True,
                headers={"User-Agent": self.settings.user_agent},
                transport=self.settings.transport,
            )
        return self.client

    @asynccontextmanager
    async def _acquire_slot(self) -> AsyncIterator[None]:
        """Acquire a semaphore slot if concurrency limiting is enabled."""
        if self._semaphore is None:
            yield
            return

        await self._semaphore.acquire()
        try:
            yield
        finally:
            self._semaphore.release()

    async def close(self) -> None:
        """Close the httpx client. Safe to call multiple times."""
        if self.client:
            await self.client.aclose()
            self.client = None

    async def fetch(self, url: str) -> bytes:
        """Download ``url`` and return the response body.

        Args:
            url: Absolute http(s) URL of the image.

        Returns:
            Raw body bytes of a 2xx response.

        Raises:
            InvalidURLError: If the URL is malformed. No request is made.
            NetworkFailure: On transport errors (timeout, DNS, reset).
            ServerFailure: On a non-2xx status or an oversized body.
        """
        validate_image_url(url)
        client = self._ensure_client()
        url_key = cache_key_for(url)
        start_time = time.perf_counter()

        try:
            async with self._acquire_slot():
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise ServerFailure(url, response.status_code)
                    data = await self._read_body(url, response)
        except httpx.InvalidURL as exc:
            self._record_failure(url_key, start_time, "InvalidURLError")
            raise InvalidURLError(url, str(exc)) from exc
        except httpx.RequestError as exc:
            self._record_failure(url_key, start_time, exc.__class__.__name__)
            logger.warning("Network failure fetching %s: %s", url, exc)
            raise NetworkFailure(url, exc) from exc
        except ServerFailure as exc:
            self._record_failure(
                url_key, start_time, f"HTTPError:{exc.status_code}", status_code=exc.status_code
            )
            logger.warning("Server failure fetching %s: HTTP %s", url, exc.status_code)
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        MetricsCollector.record(
            operation="network_fetch",
            latency_ms=latency_ms,
            success=True,
            size_bytes=len(data),
        )
        log_cache_event(
            {
                "event": "image_fetch",
                "status": "success",
                "url_key": url_key,
                "latency_ms": round(latency_ms, 3),
                "bytes": len(data),
            }
        )
        logger.debug("Downloaded %d bytes from %s", len(data), url)
        return data

    async def _read_body(self, url: str, response: httpx.Response) -> bytes:
        limit = self.settings.max_response_bytes
        declared = response.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > limit:
            raise ServerFailure(url, response.status_code, f"body of {declared} bytes exceeds {limit}")

        chunks: list[bytes] = []
        received = 0
        async for chunk in response.aiter_bytes():
            received += len(chunk)
            if received > limit:
                raise ServerFailure(url, response.status_code, f"body exceeds {limit} bytes")
            chunks.append(chunk)
        return b"".join(chunks)

    def _record_failure(
        self,
        url_key: str,
        start_time: float,
        error_type: str,
        status_code: int | None = None,
    ) -> None:
        """Record metrics/logs for a failed fetch."""
        latency_ms = (time.perf_counter() - start_time) * 1000
        MetricsCollector.record(
            operation="network_fetch",
            latency_ms=latency_ms,
            success=False,
            error=error_type,
        )
        event: dict[str, object] = {
            "event": "image_fetch",
            "status": "error",
            "url_key": url_key,
            "latency_ms": round(latency_ms, 3),
            "error_type": error_type,
        }
        if status_code is not None:
            event["status_code"] = status_code
        log_cache_event(event)
