"""HTTP handlers for fetch operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes and error mapping.
"""

import logging

from fastapi import HTTPException, status

from request_cache.dto import FetchRequest, FetchResponse, HealthCheckResponse, UpstreamStats
from request_cache.errors import SerializationError, StoreError, StoreFetchError, UpstreamFetchError
from request_cache.services import CachingFetcher

logger = logging.getLogger(__name__)


class FetchHandler:
    """HTTP handlers for the cached upstreams.

    Error mapping:
    - unknown upstream -> 404
    - SerializationError -> 400
    - UpstreamFetchError -> 502
    - StoreFetchError -> 503
    """

    def __init__(self, fetchers: dict[str, CachingFetcher]) -> None:
        """Initialize the fetch handler.

        Args:
            fetchers: One fetcher per upstream, keyed by upstream name.
        """
        self._fetchers = fetchers

    def _fetcher(self, upstream: str) -> CachingFetcher:
        fetcher = self._fetchers.get(upstream)
        if fetcher is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown upstream: {upstream}",
            )
        return fetcher

    async def fetch(self, upstream: str, request: FetchRequest) -> FetchResponse:
        """Handle POST /fetch/{upstream} requests.

        Args:
            upstream: Upstream name from the path
            request: The fetch request DTO

        Returns:
            FetchResponse with the body and its provenance

        Raises:
            HTTPException: With the status mapped from the error type
        """
        fetcher = self._fetcher(upstream)

        try:
            outcome = await fetcher.fetch_outcome(
                request.to_api_request(),
                force_live=request.force_live,
            )
        except SerializationError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Request cannot be fingerprinted: {e}",
            ) from e
        except UpstreamFetchError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Could not reach {upstream}: {e}",
            ) from e
        except StoreFetchError as e:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Cache store unavailable: {e}",
            ) from e

        return FetchResponse(
            fingerprint=outcome.fingerprint,
            raw_response=outcome.raw_response,
            from_cache=outcome.from_cache,
            stored_at=outcome.stored_at,
            stale_fallback=outcome.stale_fallback,
        )

    async def get_stats(self) -> list[UpstreamStats]:
        """Handle GET /stats requests.

        Returns:
            One UpstreamStats per fetcher

        Raises:
            HTTPException: If a store cannot report its stats
        """
        result = []
        for name, fetcher in self._fetchers.items():
            try:
                stats = await fetcher.get_stats()
            except StoreError as e:
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail=f"Failed to get stats for {name}: {e}",
                ) from e

            result.append(
                UpstreamStats(
                    upstream=name,
                    staleness_seconds=stats["staleness_seconds"],
                    store=stats["store"],
                    performance=stats["performance"],
                )
            )
        return result

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests.

        Returns:
            HealthCheckResponse with per-upstream health
        """
        upstreams = {name: await fetcher.is_healthy() for name, fetcher in self._fetchers.items()}
        is_healthy = all(upstreams.values())
        if not is_healthy:
            logger.warning("Unhealthy upstreams: %s", [n for n, ok in upstreams.items() if not ok])

        return HealthCheckResponse(
            status="healthy" if is_healthy else "unhealthy",
            upstreams=upstreams,
        )
