"""Repository layer for data access.

This layer abstracts external dependencies (SQLite, Redis, the upstream
HTTP APIs) behind protocol-based interfaces. The repositories are
protocol-based (structural typing), not inheritance-based. Any class
implementing the required methods will satisfy the protocol.
"""

from request_cache.protocols import CacheStore, UpstreamClient

from .anilist_client import AniListClient
from .memory_repository import InMemoryCacheRepository
from .redis_repository import RedisCacheRepository, get_redis_client
from .sqlite_repository import SqliteCacheRepository
from .vndb_client import VndbClient

__all__ = [
    "CacheStore",
    "UpstreamClient",
    "InMemoryCacheRepository",
    "SqliteCacheRepository",
    "RedisCacheRepository",
    "get_redis_client",
    "AniListClient",
    "VndbClient",
]
