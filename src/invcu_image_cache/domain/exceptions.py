"""Domain exceptions for the InvCU image cache.

This module defines the failure taxonomy of the image cache. These exceptions
are raised by the leaf components (fetcher, codec, disk store) and absorbed at
or below the cache facade, which only ever reports present/absent to callers.

Exception Hierarchy:
    - ImageCacheError: Base exception for all cache errors
    - InvalidURLError: URL cannot be parsed or uses an unsupported scheme
    - FetchError: Base for failures while retrieving remote bytes
        - NetworkFailure: Transport-level error (timeout, DNS, reset)
        - ServerFailure: Non-success HTTP status
    - DecodeFailure: Bytes could not be decoded as an image
    - DiskStoreError: Disk cache read or write failed
"""

from __future__ import annotations


class ImageCacheError(Exception):
    """Base exception for all image cache errors.

    Catching ImageCacheError catches every failure the cache components can
    raise. The facade relies on this to keep its contract binary.
    """


class InvalidURLError(ImageCacheError):
    """Raised when an image URL cannot be used for a fetch.

    Common causes:
        - Empty string or unparseable URL
        - Relative URL without scheme or host
        - Scheme other than http/https

    Note:
        Treated as an immediate miss. No network call is ever made.
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid image URL {url!r}: {reason}")


class FetchError(ImageCacheError):
    """Base exception for failures while fetching remote image bytes."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message)


class NetworkFailure(FetchError):
    """Raised on a transport-level error (timeout, DNS, connection reset)."""

    def __init__(self, url: str, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(url, f"Network failure fetching {url}: {cause.__class__.__name__}: {cause}")


class ServerFailure(FetchError):
    """Raised when the server answers with a status outside 200-299.

    Attributes:
        status_code: HTTP status code returned by the server.
    """

    def __init__(self, url: str, status_code: int, detail: str | None = None) -> None:
        self.status_code = status_code
        message = f"Server failure fetching {url}: HTTP {status_code}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(url, message)


class DecodeFailure(ImageCacheError):
    """Raised when bytes were retrieved but are not a decodable image.

    Note:
        Undecodable bytes are never written to the disk cache.
    """


class DiskStoreError(ImageCacheError):
    """Raised when the disk cache cannot read or write an entry.

    Non-fatal: a failed write leaves the entry absent from disk, a failed
    read is a disk miss.
    """
