"""Shared httpx plumbing for upstream API clients."""

import logging
from typing import Any

import httpx

from request_cache.config import get_settings
from request_cache.errors import UpstreamFetchError

logger = logging.getLogger(__name__)


class HttpUpstreamClient:
    """Base class for upstream clients built on httpx.AsyncClient.

    Subclasses set ``name`` and implement ``request()`` and
    ``is_available()`` on top of ``_send()``.
    """

    name = "upstream"

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Endpoint or base URL of the upstream API
            timeout: Request timeout in seconds. Defaults to settings.
            transport: Optional httpx transport (used by tests)
        """
        self._base_url = base_url
        self._timeout = timeout or get_settings().upstream_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                transport=self._transport,
            )
        return self._client

    async def _send(self, method: str, url: str, json: Any = None) -> str:
        """Send one request and return the body text.

        Raises:
            UpstreamFetchError: On timeout, transport error or non-2xx status
        """
        try:
            response = await self.client.request(method, url, json=json)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise UpstreamFetchError(f"{self.name} request timed out: {e}", upstream=self.name) from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            raise UpstreamFetchError(
                f"{self.name} returned HTTP {status_code}",
                upstream=self.name,
                status_code=status_code,
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"{self.name} request failed: {e}", upstream=self.name) from e

        return response.text

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
