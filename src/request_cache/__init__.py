"""Request Cache - fingerprint-keyed cache for rate-limited API calls.

Sits between command handlers and the AniList / VNDB HTTP APIs. A request
(operation + variables) is reduced to a canonical fingerprint; a fresh
entry under that fingerprint is served without touching the network,
anything else triggers one live call whose body replaces the entry.

Layers:
    - protocols: Interface contracts (CacheStore, UpstreamClient)
    - repositories: Stores (memory, SQLite, Redis) and upstream clients
    - services: CachingFetcher orchestration
    - handlers / api: Optional HTTP surface
    - dto: Request description and API contracts
    - entities: Domain models (internal)

Usage:
    ```python
    from request_cache import ApiRequest, CachingFetcher
    from request_cache.repositories import AniListClient, SqliteCacheRepository

    fetcher = CachingFetcher.create(
        store=SqliteCacheRepository.create(),
        client=AniListClient.create(),
    )
    body = await fetcher.fetch(ApiRequest(operation=query, variables={"id": 1}))
    ```
"""

from request_cache.config import Settings, get_settings
from request_cache.dto import ApiRequest
from request_cache.entities import CacheEntryEntity, FetchOutcome
from request_cache.errors import (
    FetchError,
    RequestCacheError,
    SerializationError,
    StoreError,
    StoreFetchError,
    UpstreamFetchError,
)
from request_cache.fingerprint import canonical_payload, request_fingerprint
from request_cache.metrics import FetchMetrics
from request_cache.protocols import CacheStore, UpstreamClient
from request_cache.repositories import (
    AniListClient,
    InMemoryCacheRepository,
    RedisCacheRepository,
    SqliteCacheRepository,
    VndbClient,
)
from request_cache.services import CachingFetcher

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Fingerprinting
    "ApiRequest",
    "canonical_payload",
    "request_fingerprint",
    # Protocols (interfaces)
    "CacheStore",
    "UpstreamClient",
    # Services (business logic)
    "CachingFetcher",
    "FetchMetrics",
    # Repositories (data access)
    "InMemoryCacheRepository",
    "SqliteCacheRepository",
    "RedisCacheRepository",
    "AniListClient",
    "VndbClient",
    # Entities (domain models)
    "CacheEntryEntity",
    "FetchOutcome",
    # Errors
    "RequestCacheError",
    "SerializationError",
    "StoreError",
    "FetchError",
    "UpstreamFetchError",
    "StoreFetchError",
]
