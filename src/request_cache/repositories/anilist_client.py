"""AniList GraphQL client.

Every request is a POST of ``{"query": ..., "variables": ...}`` to the
single GraphQL endpoint (https://graphql.anilist.co/). AniList rate-limits
unauthenticated clients per minute, which is what the cache in front of
this client is for.
"""

import httpx

from request_cache.config import get_settings
from request_cache.dto import ApiRequest
from request_cache.errors import UpstreamFetchError

from .http_client import HttpUpstreamClient


class AniListClient(HttpUpstreamClient):
    """AniList implementation of the UpstreamClient protocol.

    Example:
        ```python
        client = AniListClient.create()
        body = await client.request(
            ApiRequest(
                operation="query ($id: Int) { Media(id: $id) { title { romaji } } }",
                variables={"id": 1},
            )
        )
        ```
    """

    name = "anilist"

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(url or get_settings().anilist_url, timeout=timeout, transport=transport)

    @classmethod
    def create(cls, url: str | None = None, timeout: float | None = None) -> "AniListClient":
        """Factory method to create AniListClient with defaults.

        Args:
            url: GraphQL endpoint. If None, uses settings.
            timeout: Request timeout in seconds. If None, uses settings.

        Returns:
            Configured AniListClient
        """
        return cls(url=url, timeout=timeout)

    async def request(self, request: ApiRequest) -> str:
        payload = {"query": request.operation, "variables": request.variables}
        return await self._send("POST", self._base_url, json=payload)

    async def is_available(self) -> bool:
        try:
            await self._send("POST", self._base_url, json={"query": "{ __typename }"})
            return True
        except UpstreamFetchError:
            return False
