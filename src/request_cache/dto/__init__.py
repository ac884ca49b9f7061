"""Data Transfer Objects.

These Pydantic models define the request description callers hand to
the fetcher and the external HTTP API contract.

Internal domain logic should use entities from the entities package.
"""

from .requests import ApiRequest, FetchRequest
from .responses import FetchResponse, HealthCheckResponse, UpstreamStats

__all__ = [
    "ApiRequest",
    "FetchRequest",
    "FetchResponse",
    "HealthCheckResponse",
    "UpstreamStats",
]
