"""Request DTOs."""

from typing import Any

from pydantic import BaseModel, Field


class ApiRequest(BaseModel):
    """Description of one outbound upstream call.

    ``operation`` is the GraphQL query text for AniList or the endpoint
    path for VNDB. ``variables`` carries the GraphQL variables or the
    VNDB query body. Two requests with the same operation and the same
    variable values share a cache slot, whatever order the variables
    were built in.

    Example:
        ```python
        request = ApiRequest(
            operation="query ($id: Int) { Media(id: $id) { id } }",
            variables={"id": 1},
        )
        ```
    """

    operation: str = Field(..., description="Query text or endpoint path", min_length=1)
    variables: dict[str, Any] = Field(
        default_factory=dict,
        description="Variables sent along with the operation",
    )

    model_config = {"frozen": True}

    def to_payload(self) -> dict[str, Any]:
        """Return the mapping the fingerprint is computed from."""
        return {"operation": self.operation, "variables": self.variables}


class FetchRequest(BaseModel):
    """Request DTO for POST /fetch/{upstream}."""

    operation: str = Field(..., description="Query text or endpoint path", min_length=1)
    variables: dict[str, Any] = Field(
        default_factory=dict,
        description="Variables sent along with the operation",
    )
    force_live: bool = Field(
        False,
        description="Skip the cache read and always call the upstream API",
    )

    def to_api_request(self) -> ApiRequest:
        """Convert to the request description used by the fetcher."""
        return ApiRequest(operation=self.operation, variables=self.variables)
