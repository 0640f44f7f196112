"""
Behavioral tests for CachedImageLoader state transitions.

Uses a small in-memory image source so each transition can be observed
without the network.
"""

from __future__ import annotations

import asyncio

import pytest

from invcu_image_cache.application import CachedImageLoader, ImageCache, LoadState
from invcu_image_cache.client import ByteFetcher
from invcu_image_cache.infrastructure import DiskStore, MemoryStore
from tests.helpers import make_image


class FakeImageSource:
    """Image source with a preset cache and scripted fetch results."""

    def __init__(self, cached=None, fetch_results=None):
        self.cached = dict(cached or {})
        self.fetch_results = list(fetch_results or [])
        self.fetch_calls = 0
        self.gate: asyncio.Event | None = None

    def get_cached(self, url):
        return self.cached.get(url)

    async def fetch_image(self, url):
        self.fetch_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return self.fetch_results.pop(0) if self.fetch_results else None

    async def preload(self, urls):
        return 0

    def invalidate_all(self):
        self.cached.clear()


URL = "https://example.com/items/7.jpg"


class TestLoaderConstruction:
    """Synchronous cache check at construction."""

    def test_cached_image_starts_loaded(self):
        image = make_image()
        loader = CachedImageLoader(FakeImageSource(cached={URL: image}), URL)

        assert loader.state is LoadState.LOADED
        assert loader.image is image
        assert not loader.is_loading
        assert not loader.load_error

    def test_uncached_image_starts_idle(self):
        loader = CachedImageLoader(FakeImageSource(), URL)

        assert loader.state is LoadState.IDLE
        assert loader.image is None


@pytest.mark.asyncio
class TestLoaderLoad:
    """Asynchronous load() transitions."""

    async def test_load_of_cached_image_does_not_fetch(self):
        image = make_image()
        source = FakeImageSource(cached={URL: image})
        loader = CachedImageLoader(source, URL)

        assert await loader.load() is image
        assert source.fetch_calls == 0

    async def test_successful_load(self):
        image = make_image()
        source = FakeImageSource(fetch_results=[image])
        loader = CachedImageLoader(source, URL)

        result = await loader.load()

        assert result is image
        assert loader.state is LoadState.LOADED
        assert loader.image is image

    async def test_is_loading_during_fetch(self):
        """Test that the loader reports LOADING while the fetch runs."""
        source = FakeImageSource(fetch_results=[make_image()])
        source.gate = asyncio.Event()
        loader = CachedImageLoader(source, URL)

        task = asyncio.create_task(loader.load())
        await asyncio.sleep(0)

        assert loader.is_loading
        assert await loader.load() is None
        assert source.fetch_calls == 1

        source.gate.set()
        await task
        assert loader.state is LoadState.LOADED

    async def test_failed_load_sets_error_and_does_not_retry(self):
        """Test that a failure sticks until reset()."""
        source = FakeImageSource(fetch_results=[None])
        loader = CachedImageLoader(source, URL)

        assert await loader.load() is None
        assert loader.load_error
        assert loader.state is LoadState.FAILED

        assert await loader.load() is None
        assert source.fetch_calls == 1

    async def test_reset_allows_retry(self):
        image = make_image()
        source = FakeImageSource(fetch_results=[None, image])
        loader = CachedImageLoader(source, URL)
        await loader.load()

        loader.reset()
        assert loader.state is LoadState.IDLE

        assert await loader.load() is image
        assert source.fetch_calls == 2

    async def test_reset_is_noop_unless_failed(self):
        image = make_image()
        loader = CachedImageLoader(FakeImageSource(cached={URL: image}), URL)

        loader.reset()

        assert loader.state is LoadState.LOADED

    async def test_loader_over_real_cache(self, image_server, cache_dir):
        """Test that a loader built after a fetch starts LOADED from the cache."""
        url = f"{image_server.base_url}/items/7.jpg"
        cache = ImageCache(ByteFetcher(), MemoryStore(), DiskStore(cache_dir))

        async with cache:
            first = CachedImageLoader(cache, url)
            assert first.state is LoadState.IDLE
            await first.load()

            second = CachedImageLoader(cache, url)
            assert second.state is LoadState.LOADED
            assert second.image is first.image

        assert image_server.state["hits"]["/items/7.jpg"] == 1


def test_load_state_values():
    """LoadState values are stable strings."""
    assert [state.value for state in LoadState] == ["idle", "loading", "loaded", "failed"]
