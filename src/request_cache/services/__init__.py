"""Service layer for business logic.

Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from request_cache.services import CachingFetcher

    # Using factory method (options from settings)
    fetcher = CachingFetcher.create(store=store, client=client)

    # Or manual creation
    fetcher = CachingFetcher(store=store, client=client, staleness_threshold=3600)
    ```
"""

from .caching_fetcher import DEFAULT_STALENESS_SECONDS, CachingFetcher

__all__ = [
    "CachingFetcher",
    "DEFAULT_STALENESS_SECONDS",
]
