"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Fetchers and handler stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from request_cache.config import Settings, get_settings
from request_cache.handlers import FetchHandler
from request_cache.protocols import CacheStore
from request_cache.repositories import (
    AniListClient,
    InMemoryCacheRepository,
    RedisCacheRepository,
    SqliteCacheRepository,
    VndbClient,
)
from request_cache.services import CachingFetcher

logger = logging.getLogger(__name__)


def build_store(settings: Settings, upstream: str) -> CacheStore:
    """Create the configured store for one upstream.

    Each upstream gets its own key space: a table per upstream in SQLite,
    a key prefix per upstream in Redis.

    Args:
        settings: Application settings
        upstream: Upstream name, e.g. "anilist"

    Returns:
        A CacheStore implementation
    """
    if settings.cache_backend == "sqlite":
        return SqliteCacheRepository.create(path=settings.sqlite_path, table=f"{upstream}_cache")
    if settings.cache_backend == "redis":
        return RedisCacheRepository.create(key_prefix=f"{settings.key_prefix}:{upstream}")
    return InMemoryCacheRepository.create()


def build_fetchers(settings: Settings) -> dict[str, CachingFetcher]:
    """Create one fetcher per supported upstream from settings."""
    clients = [
        AniListClient.create(url=settings.anilist_url, timeout=settings.upstream_timeout),
        VndbClient.create(base_url=settings.vndb_url, timeout=settings.upstream_timeout),
    ]
    return {
        client.name: CachingFetcher.create(
            store=build_store(settings, client.name),
            client=client,
            staleness_threshold=settings.staleness_seconds,
            serve_stale_on_error=settings.serve_stale_on_error,
            single_flight=settings.single_flight,
            hash_fingerprints=settings.hash_fingerprints,
        )
        for client in clients
    }


def get_handler(request: Request) -> FetchHandler:
    """Dependency injection for FetchHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The FetchHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "fetch_handler", None)
    if handler is None:
        raise RuntimeError("FetchHandler not initialized. Check lifespan setup.")
    return handler


def make_lifespan(
    fetchers: dict[str, CachingFetcher] | None = None,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Build the lifespan context manager for the app.

    Args:
        fetchers: Prebuilt fetchers. If None, they are built from settings
            at startup and closed at shutdown.

    Returns:
        A lifespan function for FastAPI
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = fetchers is None
        active = build_fetchers(get_settings()) if owned else fetchers

        app.state.fetchers = active
        app.state.fetch_handler = FetchHandler(fetchers=active)
        for name, fetcher in active.items():
            logger.info("Caching %s (staleness %ss)", name, fetcher.staleness_threshold)

        yield

        del app.state.fetch_handler
        del app.state.fetchers
        if owned:
            for fetcher in active.values():
                await fetcher.close()
        logger.info("Request cache shut down")

    return lifespan


# Type alias for cleaner dependency injection
HandlerDep = Annotated[FetchHandler, Depends(get_handler)]
