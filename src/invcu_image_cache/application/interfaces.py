"""Interfaces (Protocols) for the image cache's collaborators.

The cache facade depends on these protocols rather than on the concrete
infrastructure classes, so tests and hosts can substitute their own fetcher
or stores.

Key Interfaces:
    - ByteFetcherInterface: Remote key-value fetch ("given a URL, return bytes or fail")
    - MemoryStoreInterface: Bounded key -> decoded image map
    - DiskStoreInterface: Persistent key -> encoded image files
    - ImageCodecInterface: Decoding remote bytes into images
    - ImageSourceInterface: Consumer contract exposed to the UI layer

Note:
    Implementations don't need to inherit from these protocols; they just
    need to implement the required methods.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from PIL import Image


class ByteFetcherInterface(Protocol):
    """Protocol for remote byte fetchers."""

    async def fetch(self, url: str) -> bytes:
        """Fetch the body at ``url``.

        Raises:
            InvalidURLError: If the URL cannot be used.
            NetworkFailure: On transport errors.
            ServerFailure: On a non-success HTTP status.
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...


class MemoryStoreInterface(Protocol):
    """Protocol for the in-memory image tier.

    All methods are synchronous and perform no I/O.
    """

    def get(self, key: str) -> Image.Image | None: ...

    def put(self, key: str, image: Image.Image) -> None: ...

    def clear(self) -> None: ...

    def __len__(self) -> int: ...

    def get_stats(self) -> dict[str, int | float]: ...


class DiskStoreInterface(Protocol):
    """Protocol for the on-disk image tier."""

    def encode(self, image: Image.Image) -> bytes:
        """Encode ``image`` into the stored representation."""
        ...

    def save(self, key: str, image: Image.Image) -> None:
        """Encode and persist ``image``.

        Raises:
            DiskStoreError: If the entry could not be written.
        """
        ...

    def save_bytes(self, key: str, payload: bytes) -> None:
        """Persist an already encoded payload.

        Raises:
            DiskStoreError: If the entry could not be written.
        """
        ...

    def load(self, key: str) -> Image.Image | None:
        """Return the decoded entry, or None on any miss or failure."""
        ...

    def total_size(self) -> int: ...

    def clear(self) -> None: ...


class ImageCodecInterface(Protocol):
    """Protocol for decoding fetched bytes."""

    def decode(self, data: bytes) -> Image.Image:
        """Decode ``data``.

        Raises:
            DecodeFailure: If the bytes are not an image.
        """
        ...


class ImageSourceInterface(Protocol):
    """Consumer contract: synchronous lookup plus asynchronous fetch-or-populate.

    Any method that reaches for the network returns None on failure rather
    than raising.
    """

    def get_cached(self, url: str) -> Image.Image | None: ...

    async def fetch_image(self, url: str) -> Image.Image | None: ...

    async def preload(self, urls: Iterable[str]) -> int: ...

    def invalidate_all(self) -> None: ...
