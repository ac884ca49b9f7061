"""VNDB REST client (https://api.vndb.org/kana).

``ApiRequest.operation`` is the endpoint path. A request without variables
is a GET (``/stats``, ``/schema``); a request with variables is a POST whose
JSON body is the variables mapping, i.e. VNDB's ``filters`` / ``fields``
query object.
"""

import httpx

from request_cache.config import get_settings
from request_cache.dto import ApiRequest
from request_cache.errors import UpstreamFetchError

from .http_client import HttpUpstreamClient


class VndbClient(HttpUpstreamClient):
    """VNDB implementation of the UpstreamClient protocol.

    Example:
        ```python
        client = VndbClient.create()
        stats = await client.request(ApiRequest(operation="/stats"))
        vn = await client.request(
            ApiRequest(
                operation="/vn",
                variables={"filters": ["id", "=", "v17"], "fields": "title"},
            )
        )
        ```
    """

    name = "vndb"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            (base_url or get_settings().vndb_url).rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def create(cls, base_url: str | None = None, timeout: float | None = None) -> "VndbClient":
        """Factory method to create VndbClient with defaults.

        Args:
            base_url: API base URL. If None, uses settings.
            timeout: Request timeout in seconds. If None, uses settings.

        Returns:
            Configured VndbClient
        """
        return cls(base_url=base_url, timeout=timeout)

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def request(self, request: ApiRequest) -> str:
        url = self._url(request.operation)
        if request.variables:
            return await self._send("POST", url, json=request.variables)
        return await self._send("GET", url)

    async def is_available(self) -> bool:
        try:
            await self._send("GET", self._url("/stats"))
            return True
        except UpstreamFetchError:
            return False
