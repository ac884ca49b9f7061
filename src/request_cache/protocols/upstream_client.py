"""Upstream client protocol.

Defines the interface for the HTTP API being proxied and cached
(AniList GraphQL, VNDB REST).
"""

from typing import Protocol, runtime_checkable

from request_cache.dto import ApiRequest


@runtime_checkable
class UpstreamClient(Protocol):
    """Protocol for upstream API clients."""

    @property
    def name(self) -> str:
        """Return the upstream's short name (e.g. "anilist")."""
        ...

    async def request(self, request: ApiRequest) -> str:
        """Perform one live call.

        Args:
            request: The request description

        Returns:
            The raw response body as text

        Raises:
            UpstreamFetchError: On transport error, timeout or non-2xx status
        """
        ...

    async def is_available(self) -> bool:
        """Check if the upstream is reachable.

        Returns:
            True if reachable, False otherwise
        """
        ...

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        ...
