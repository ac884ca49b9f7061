"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (in-memory → SQLite → Redis)
- Unit testing with fake stores and upstream clients
- Clear separation of concerns

Usage:
    ```python
    from request_cache.protocols import CacheStore, UpstreamClient

    store: CacheStore = InMemoryCacheRepository()
    store: CacheStore = SqliteCacheRepository("./cache.db")
    client: UpstreamClient = AniListClient()
    ```
"""

from .cache_store import CacheStore
from .upstream_client import UpstreamClient

__all__ = [
    "CacheStore",
    "UpstreamClient",
]
