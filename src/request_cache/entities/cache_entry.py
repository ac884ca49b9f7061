"""Cache entry domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for one cached upstream response.

    Attributes:
        fingerprint: Canonical identity of the request (primary key)
        raw_response: The response body exactly as the upstream returned it
        stored_at: Unix timestamp of the live fetch that produced the body
    """

    fingerprint: str
    raw_response: str
    stored_at: float

    def age(self, now: float) -> float:
        """Seconds elapsed since the entry was stored."""
        return now - self.stored_at

    def is_fresh(self, now: float, threshold: float) -> bool:
        """Check whether the entry may still be served without a refresh.

        Args:
            now: Current Unix timestamp
            threshold: Staleness threshold in seconds

        Returns:
            True if the entry is younger than the threshold
        """
        return self.age(now) < threshold
