"""Fetch-or-refresh orchestration.

This service coordinates the cache store (data access) and the upstream
client (live HTTP calls): serve a fresh entry when there is one, otherwise
call the upstream and record the new body.
"""

import asyncio
import json
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from request_cache.config import get_settings
from request_cache.dto import ApiRequest
from request_cache.entities import CacheEntryEntity, FetchOutcome
from request_cache.errors import StoreError, StoreFetchError, UpstreamFetchError
from request_cache.fingerprint import request_fingerprint
from request_cache.metrics import FetchMetrics
from request_cache.protocols import CacheStore, UpstreamClient

logger = logging.getLogger(__name__)

DEFAULT_STALENESS_SECONDS = 3 * 24 * 60 * 60

ModelT = TypeVar("ModelT", bound=BaseModel)


def _short(fingerprint: str, limit: int = 80) -> str:
    return fingerprint if len(fingerprint) <= limit else fingerprint[:limit] + "..."


class CachingFetcher:
    """Memoize upstream responses by request fingerprint, expire by age.

    This service depends on PROTOCOLS, not concrete implementations:
    - CacheStore: in-memory, SQLite, Redis
    - UpstreamClient: AniList, VNDB, or a fake in tests

    Failure policy: by default a failed refresh of a stale entry raises
    (the stale entry stays in the store for later calls). With
    ``serve_stale_on_error=True`` the stale body is returned instead,
    except for forced calls. The policy is fixed per fetcher.

    Concurrent misses for one fingerprint each call the upstream unless
    ``single_flight=True``, in which case they share one live call.

    Example:
        ```python
        from request_cache.repositories import AniListClient, SqliteCacheRepository
        from request_cache.services import CachingFetcher

        fetcher = CachingFetcher.create(
            store=SqliteCacheRepository.create(),
            client=AniListClient.create(),
        )
        body = await fetcher.fetch(ApiRequest(operation=query, variables={"id": 1}))
        ```
    """

    def __init__(
        self,
        store: CacheStore,
        client: UpstreamClient,
        staleness_threshold: float = DEFAULT_STALENESS_SECONDS,
        serve_stale_on_error: bool = False,
        single_flight: bool = False,
        hash_fingerprints: bool = False,
        upstream_timeout: float | None = None,
        clock: Callable[[], float] = time.time,
        metrics: FetchMetrics | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            store: Cache storage backend (required).
            client: Upstream API client (required).
            staleness_threshold: Maximum entry age in seconds before a refresh.
            serve_stale_on_error: Answer a failed refresh with the stale entry.
            single_flight: Share one live call among concurrent misses.
            hash_fingerprints: Key entries by SHA-256 digest instead of canonical text.
            upstream_timeout: Upper bound in seconds on one live call, on top of
                the client's own timeout. None leaves it to the client.
            clock: Source of Unix timestamps.
            metrics: Counters to record into. A fresh one if None.
        """
        if staleness_threshold <= 0:
            raise ValueError("Staleness threshold must be greater than 0")

        self._store = store
        self._client = client
        self._threshold = staleness_threshold
        self._serve_stale_on_error = serve_stale_on_error
        self._single_flight = single_flight
        self._hash_fingerprints = hash_fingerprints
        self._upstream_timeout = upstream_timeout
        self._clock = clock
        self._metrics = metrics or FetchMetrics()
        self._in_flight: dict[str, asyncio.Task[FetchOutcome]] = {}

    @classmethod
    def create(
        cls,
        store: CacheStore,
        client: UpstreamClient,
        staleness_threshold: float | None = None,
        serve_stale_on_error: bool | None = None,
        single_flight: bool | None = None,
        hash_fingerprints: bool | None = None,
    ) -> "CachingFetcher":
        """Factory method filling unspecified options from settings.

        Args:
            store: Cache storage backend (required).
            client: Upstream API client (required).
            staleness_threshold: If None, uses settings.
            serve_stale_on_error: If None, uses settings.
            single_flight: If None, uses settings.
            hash_fingerprints: If None, uses settings.

        Returns:
            Configured CachingFetcher
        """
        settings = get_settings()
        return cls(
            store=store,
            client=client,
            staleness_threshold=staleness_threshold or settings.staleness_seconds,
            serve_stale_on_error=(
                settings.serve_stale_on_error if serve_stale_on_error is None else serve_stale_on_error
            ),
            single_flight=settings.single_flight if single_flight is None else single_flight,
            hash_fingerprints=(
                settings.hash_fingerprints if hash_fingerprints is None else hash_fingerprints
            ),
        )

    def fingerprint(self, request: ApiRequest | Mapping[str, Any]) -> str:
        """Return the store key this fetcher uses for a request."""
        return request_fingerprint(request, hashed=self._hash_fingerprints)

    async def fetch(self, request: ApiRequest, force_live: bool = False) -> str:
        """Return the raw response body for a request.

        Args:
            request: The request description
            force_live: Skip the cache read; the result is still stored

        Returns:
            The raw response body

        Raises:
            SerializationError: If the request cannot be fingerprinted
            UpstreamFetchError: If a needed live call fails
            StoreFetchError: If the store fails
        """
        outcome = await self.fetch_outcome(request, force_live=force_live)
        return outcome.raw_response

    async def fetch_outcome(self, request: ApiRequest, force_live: bool = False) -> FetchOutcome:
        """Same as fetch(), but also report where the body came from.

        Business logic:
        1. Fingerprint the request
        2. Unless forced, serve a fresh stored entry
        3. Otherwise call the upstream and store the new body
        """
        fingerprint = self.fingerprint(request)

        if force_live:
            self._metrics.record_forced()
            logger.debug("Forced live fetch for %s", _short(fingerprint))
            return await self._refresh(request, fingerprint, stale_entry=None)

        start_time = time.perf_counter()
        entry = await self._get(fingerprint)
        lookup_time_ms = (time.perf_counter() - start_time) * 1000

        if entry is not None and entry.is_fresh(self._clock(), self._threshold):
            self._metrics.record_hit(lookup_time_ms)
            logger.debug("Cache hit for %s", _short(fingerprint))
            return FetchOutcome(
                fingerprint=fingerprint,
                raw_response=entry.raw_response,
                from_cache=True,
                stored_at=entry.stored_at,
            )

        self._metrics.record_miss(lookup_time_ms, stale=entry is not None)
        logger.debug("Cache %s for %s", "stale" if entry else "miss", _short(fingerprint))

        if self._single_flight:
            return await self._shared_refresh(request, fingerprint, entry)
        return await self._refresh(request, fingerprint, entry)

    async def fetch_json(self, request: ApiRequest, force_live: bool = False) -> Any:
        """Fetch and decode the body as JSON.

        Raises:
            UpstreamFetchError: If the body is not valid JSON
        """
        raw = await self.fetch(request, force_live=force_live)
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise UpstreamFetchError(
                f"{self._client.name} response is not valid JSON: {e}",
                upstream=self._client.name,
            ) from e

    async def fetch_model(
        self,
        request: ApiRequest,
        model_type: type[ModelT],
        force_live: bool = False,
    ) -> ModelT:
        """Fetch and decode the body into a pydantic model.

        Raises:
            UpstreamFetchError: If the body does not match ``model_type``
        """
        raw = await self.fetch(request, force_live=force_live)
        try:
            return model_type.model_validate_json(raw)
        except ValidationError as e:
            raise UpstreamFetchError(
                f"{self._client.name} response does not match {model_type.__name__}: {e}",
                upstream=self._client.name,
            ) from e

    async def _shared_refresh(
        self,
        request: ApiRequest,
        fingerprint: str,
        stale_entry: CacheEntryEntity | None,
    ) -> FetchOutcome:
        task = self._in_flight.get(fingerprint)
        if task is None:
            task = asyncio.create_task(self._refresh(request, fingerprint, stale_entry))
            self._in_flight[fingerprint] = task
            task.add_done_callback(lambda done: self._forget(fingerprint, done))
        else:
            logger.debug("Joining in-flight fetch for %s", _short(fingerprint))
        return await asyncio.shield(task)

    def _forget(self, fingerprint: str, task: "asyncio.Task[FetchOutcome]") -> None:
        if self._in_flight.get(fingerprint) is task:
            del self._in_flight[fingerprint]

    async def _refresh(
        self,
        request: ApiRequest,
        fingerprint: str,
        stale_entry: CacheEntryEntity | None,
    ) -> FetchOutcome:
        start_time = time.perf_counter()
        try:
            body = await self._call_upstream(request)
            self._check_decodable(body)
        except UpstreamFetchError as e:
            self._metrics.record_upstream_call((time.perf_counter() - start_time) * 1000, failed=True)
            if stale_entry is not None and self._serve_stale_on_error:
                self._metrics.record_stale_fallback()
                logger.warning(
                    "Serving stale %s entry for %s after failed refresh: %s",
                    self._client.name,
                    _short(fingerprint),
                    e,
                )
                return FetchOutcome(
                    fingerprint=fingerprint,
                    raw_response=stale_entry.raw_response,
                    from_cache=True,
                    stored_at=stale_entry.stored_at,
                    stale_fallback=True,
                )
            logger.warning("Live %s fetch failed for %s: %s", self._client.name, _short(fingerprint), e)
            raise

        self._metrics.record_upstream_call((time.perf_counter() - start_time) * 1000)

        stored_at = self._clock()
        await self._put(CacheEntryEntity(fingerprint=fingerprint, raw_response=body, stored_at=stored_at))
        return FetchOutcome(
            fingerprint=fingerprint,
            raw_response=body,
            from_cache=False,
            stored_at=stored_at,
        )

    async def _call_upstream(self, request: ApiRequest) -> str:
        if self._upstream_timeout is None:
            return await self._client.request(request)
        try:
            return await asyncio.wait_for(self._client.request(request), self._upstream_timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamFetchError(
                f"{self._client.name} request exceeded {self._upstream_timeout}s",
                upstream=self._client.name,
            ) from e

    def _check_decodable(self, body: str) -> None:
        # An undecodable body must never reach the store, where it would
        # shadow the upstream until it goes stale.
        try:
            json.loads(body)
        except json.JSONDecodeError as e:
            raise UpstreamFetchError(
                f"{self._client.name} response is not valid JSON: {e}",
                upstream=self._client.name,
            ) from e

    async def _get(self, fingerprint: str) -> CacheEntryEntity | None:
        try:
            return await self._store.get(fingerprint)
        except StoreError as e:
            raise StoreFetchError(f"Cache lookup failed: {e}") from e

    async def _put(self, entry: CacheEntryEntity) -> None:
        try:
            await self._store.put(entry)
        except StoreError as e:
            raise StoreFetchError(f"Cache write failed: {e}") from e

    async def get_stats(self) -> dict:
        """Get fetcher statistics.

        Returns:
            Dictionary with store stats and performance counters
        """
        return {
            "upstream": self._client.name,
            "staleness_seconds": self._threshold,
            "store": await self._store.get_stats(),
            "performance": self._metrics.to_dict(),
        }

    async def is_healthy(self) -> bool:
        """Check if fetcher is healthy.

        Returns:
            True if both the store and the upstream are reachable
        """
        store_healthy = await self._store.health_check()
        upstream_healthy = await self._client.is_available()
        return store_healthy and upstream_healthy

    async def close(self) -> None:
        """Close the store and the upstream client."""
        await self._client.close()
        await self._store.close()

    def set_staleness_threshold(self, seconds: float) -> None:
        """Update the staleness threshold.

        Args:
            seconds: New threshold, must be positive
        """
        if seconds <= 0:
            raise ValueError("Staleness threshold must be greater than 0")
        self._threshold = seconds

    @property
    def staleness_threshold(self) -> float:
        """Get current staleness threshold in seconds."""
        return self._threshold

    @property
    def serve_stale_on_error(self) -> bool:
        """Whether failed refreshes fall back to stale entries."""
        return self._serve_stale_on_error

    @property
    def name(self) -> str:
        """Name of the upstream this fetcher fronts."""
        return self._client.name

    @property
    def metrics(self) -> FetchMetrics:
        """Get the performance counters."""
        return self._metrics

    @property
    def store(self) -> CacheStore:
        """Get the underlying store (for testing)."""
        return self._store

    @property
    def client(self) -> UpstreamClient:
        """Get the underlying upstream client (for testing)."""
        return self._client
