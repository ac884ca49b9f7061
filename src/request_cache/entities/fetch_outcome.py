"""Fetch outcome domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class FetchOutcome:
    """Result of a fetch, with where the body came from.

    Attributes:
        fingerprint: The key the request resolved to
        raw_response: The response body
        from_cache: True if no upstream call produced this body
        stored_at: When the returned body was fetched live (Unix timestamp)
        stale_fallback: True if a failed refresh was answered with a stale entry
    """

    fingerprint: str
    raw_response: str
    from_cache: bool
    stored_at: float
    stale_fallback: bool = False
