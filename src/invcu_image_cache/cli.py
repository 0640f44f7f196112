"""
Image Cache CLI
===============

Command-line access to the on-disk image cache for diagnostics.

Usage:
    invcu-image-cache size
    invcu-image-cache fetch https://example.com/items/1.jpg https://example.com/items/2.jpg
    invcu-image-cache stats --preload urls.txt
    invcu-image-cache clear
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from invcu_image_cache.container import image_cache_lifespan
from invcu_image_cache.infrastructure.config import Settings
from invcu_image_cache.telemetry.metrics import MetricsCollector


def format_bytes(size: int) -> str:
    """Format a byte count for humans."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def print_header(title: str) -> None:
    """Print formatted header."""
    print(f"\n{'=' * 60}")
    print(f"  {title}")
    print(f"{'=' * 60}")


def _read_url_file(path: Path) -> list[str]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip() and not line.startswith("#")]


async def _cmd_fetch(settings: Settings, urls: list[str]) -> int:
    async with image_cache_lifespan(settings) as cache:
        already_cached = {url for url in urls if cache.get_cached(url) is not None}
        loaded = await cache.preload(urls)

        print_header("Image Fetch")
        for url in urls:
            if url in already_cached:
                status = "cached"
            elif cache.get_cached(url) is not None:
                status = "downloaded"
            else:
                status = "FAILED"
            print(f"  {status:<11} {url}")
        print(f"\n  {loaded}/{len(urls)} images available")
    return 0 if loaded == len(urls) else 1


async def _cmd_size(settings: Settings) -> int:
    async with image_cache_lifespan(settings) as cache:
        size = cache.disk_size()
    print(f"{format_bytes(size)} ({size} bytes) in {settings.disk.directory}")
    return 0


async def _cmd_clear(settings: Settings) -> int:
    async with image_cache_lifespan(settings) as cache:
        before = cache.disk_size()
        cache.invalidate_all()
    print(f"Cleared {format_bytes(before)} from {settings.disk.directory}")
    return 0


async def _cmd_stats(settings: Settings, preload: Path | None) -> int:
    async with image_cache_lifespan(settings) as cache:
        if preload is not None:
            await cache.preload(_read_url_file(preload))
        await cache.wait_for_pending_writes()
        report = {
            "cache": cache.get_stats(),
            "operations": MetricsCollector.get_metrics_json(),
        }
    print(json.dumps(report, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="invcu-image-cache",
        description="Inspect and manage the InvCU item image cache",
    )
    parser.add_argument("--config", type=Path, help="Path to a TOML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Download URLs into the cache")
    fetch.add_argument("urls", nargs="+", help="Image URLs")

    subparsers.add_parser("size", help="Print disk cache size")
    subparsers.add_parser("clear", help="Clear memory and disk caches")

    stats = subparsers.add_parser("stats", help="Print cache statistics as JSON")
    stats.add_argument("--preload", type=Path, help="File with one URL per line to fetch first")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = Settings.from_toml(args.config)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    match args.command:
        case "fetch":
            return asyncio.run(_cmd_fetch(settings, args.urls))
        case "size":
            return asyncio.run(_cmd_size(settings))
        case "clear":
            return asyncio.run(_cmd_clear(settings))
        case "stats":
            return asyncio.run(_cmd_stats(settings, args.preload))
        case _:
            return 2


if __name__ == "__main__":
    sys.exit(main())
