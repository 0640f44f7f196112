"""
Quick Start Example - Using the InvCU Image Cache

This example shows how a host app builds one shared cache at startup, renders
item photos through it, and preloads a list screen.

Usage:
    python examples/quick_start.py https://example.com/items/1.jpg [URL ...]
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from invcu_image_cache import CachedImageLoader, LoadState, image_cache_lifespan


async def example_item_view(url: str):
    """One detail view loading one photo."""
    print("Example 1: Item View")
    print("-" * 40)

    async with image_cache_lifespan() as cache:
        loader = CachedImageLoader(cache, url)
        print(f"Initial state: {loader.state}")

        image = await loader.load()
        if loader.state is LoadState.LOADED and image is not None:
            print(f"Loaded {image.size[0]}x{image.size[1]} image")
        else:
            print("Showing placeholder (load failed)")


async def example_list_preload(urls: list[str]):
    """A list screen warming the cache for its rows."""
    print("\nExample 2: List Preload")
    print("-" * 40)

    async with image_cache_lifespan() as cache:
        loaded = await cache.preload(urls)
        print(f"Preloaded {loaded}/{len(urls)} images")

        stats = cache.get_stats()
        print(f"Memory entries: {stats['memory']['size']}")
        print(f"Downloads started: {stats['downloads']['started']}")


def main():
    urls = sys.argv[1:]
    if not urls:
        print(__doc__)
        return 1

    asyncio.run(example_item_view(urls[0]))
    asyncio.run(example_list_preload(urls))
    return 0


if __name__ == "__main__":
    sys.exit(main())
