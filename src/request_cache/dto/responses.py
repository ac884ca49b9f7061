"""Response DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class FetchResponse(BaseModel):
    """Response DTO for a fetch through the cache."""

    fingerprint: str = Field(..., description="Cache key the request resolved to")
    raw_response: str = Field(..., description="Upstream response body, verbatim")
    from_cache: bool = Field(..., description="Whether the body was served without an upstream call")
    stored_at: float = Field(..., description="When the body was fetched live (Unix timestamp)")
    stale_fallback: bool = Field(
        False,
        description="Whether a failed refresh was answered with a stale entry",
    )


class UpstreamStats(BaseModel):
    """Statistics for one upstream's cache."""

    upstream: str = Field(..., description="Upstream name")
    staleness_seconds: float = Field(..., description="Staleness threshold in seconds", gt=0)
    store: dict[str, Any] = Field(default_factory=dict, description="Store statistics")
    performance: dict[str, float | int] = Field(
        default_factory=dict,
        description="Hit/miss counters and timings",
    )


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    upstreams: dict[str, bool] = Field(
        default_factory=dict,
        description="Per-upstream health (store reachable and upstream reachable)",
    )
