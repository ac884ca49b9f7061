from typing import Any

from fastapi import APIRouter, FastAPI, Response, status

from request_cache.api.dependencies import HandlerDep, make_lifespan
from request_cache.config import get_settings
from request_cache.dto import FetchRequest, FetchResponse, HealthCheckResponse, UpstreamStats
from request_cache.logging_setup import configure_logging
from request_cache.services import CachingFetcher

router = APIRouter()


@router.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Request Cache API",
        "version": "0.1.0",
        "description": "Fingerprint-keyed cache in front of the AniList and VNDB APIs",
        "endpoints": {
            "fetch": "/fetch/{upstream}",
            "stats": "/stats",
            "health": "/health",
            "docs": "/docs",
        },
    }


@router.get("/health", response_model=HealthCheckResponse)
async def health(handler: HandlerDep, response: Response) -> HealthCheckResponse:
    """Health check endpoint."""
    result = await handler.health_check()
    if result.status != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return result


@router.get("/stats", response_model=list[UpstreamStats])
async def stats(handler: HandlerDep) -> list[UpstreamStats]:
    """Get per-upstream cache statistics."""
    return await handler.get_stats()


@router.post("/fetch/{upstream}", response_model=FetchResponse)
async def fetch(upstream: str, request: FetchRequest, handler: HandlerDep) -> FetchResponse:
    """
    Fetch through the cache.

    Args:
        upstream: "anilist" or "vndb".
        request: Operation, variables and force_live flag.

    Returns:
        The raw upstream body with its cache provenance.
    """
    return await handler.fetch(upstream, request)


def create_app(fetchers: dict[str, CachingFetcher] | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        fetchers: Prebuilt fetchers keyed by upstream name. If None, the
            lifespan builds them from settings.

    Returns:
        The configured app
    """
    app = FastAPI(
        title="Request Cache API",
        description="Fingerprint-keyed cache in front of the AniList and VNDB APIs",
        version="0.1.0",
        lifespan=make_lifespan(fetchers),
    )
    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "request_cache.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    main()
