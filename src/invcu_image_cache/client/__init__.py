"""HTTP client for fetching remote image bytes."""

from invcu_image_cache.client.fetcher import ByteFetcher, FetcherSettings, validate_image_url

__all__ = ["ByteFetcher", "FetcherSettings", "validate_image_url"]
