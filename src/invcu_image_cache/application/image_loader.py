"""Per-view image loading state on top of the image cache.

A CachedImageLoader is what a list row or detail screen holds for one item
photo: it answers synchronously from the cache when it can (so cached photos
render on first paint) and otherwise drives one asynchronous fetch, exposing
the state a view needs to choose between the image and a placeholder.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from PIL import Image

    from invcu_image_cache.application.interfaces import ImageSourceInterface

logger = logging.getLogger(__name__)


class LoadState(StrEnum):
    """Loading state of a single image view.

    Attributes:
        IDLE: Not cached and no load attempted yet.
        LOADING: A fetch is in progress.
        LOADED: Image available.
        FAILED: The fetch finished without an image; show the error placeholder.
    """

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class CachedImageLoader:
    """Loads one image URL through an image cache and tracks view state.

    Construction performs a synchronous cache lookup; a hit starts out
    LOADED with no fetch at all.

    Attributes:
        url: Image URL this loader is bound to.
        image: Loaded image, or None.
        state: Current LoadState.
    """

    __slots__ = ("_cache", "image", "state", "url")

    def __init__(self, cache: ImageSourceInterface, url: str) -> None:
        self._cache = cache
        self.url = url
        self.image: Image.Image | None = cache.get_cached(url)
        self.state = LoadState.LOADED if self.image is not None else LoadState.IDLE

    @property
    def is_loading(self) -> bool:
        return self.state is LoadState.LOADING

    @property
    def load_error(self) -> bool:
        return self.state is LoadState.FAILED

    async def load(self) -> Image.Image | None:
        """Fetch the image if it is not loaded yet.

        Returns:
            The image when loaded. None if the fetch failed, if an earlier
            failure has not been reset, or if a load is already running
            (that load will publish the result).
        """
        match self.state:
            case LoadState.LOADED:
                return self.image
            case LoadState.LOADING | LoadState.FAILED:
                return None
            case LoadState.IDLE:
                pass

        self.state = LoadState.LOADING
        image = await self._cache.fetch_image(self.url)
        if image is None:
            self.state = LoadState.FAILED
            logger.debug("Image load failed: %s", self.url[-60:])
            return None

        self.image = image
        self.state = LoadState.LOADED
        return image

    def reset(self) -> None:
        """Return a failed loader to IDLE so the next load() tries again."""
        if self.state is LoadState.FAILED:
            self.state = LoadState.IDLE
