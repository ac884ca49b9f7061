"""Cache storage protocol.

Defines the interface for any durable or in-process key-value medium that
holds one CacheEntryEntity per fingerprint.

Implementations in this package:
- In-memory dict (no persistence)
- SQLite via aiosqlite (survives restarts)
- Redis
"""

from typing import Protocol, runtime_checkable

from request_cache.entities import CacheEntryEntity


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache storage backends.

    Any type that implements these methods satisfies the protocol, no
    explicit inheritance needed. Backend failures must surface as
    ``StoreError``.
    """

    async def get(self, fingerprint: str) -> CacheEntryEntity | None:
        """Look up the entry for a fingerprint.

        Args:
            fingerprint: The request fingerprint

        Returns:
            The stored entry, or None if absent
        """
        ...

    async def put(self, entry: CacheEntryEntity) -> None:
        """Insert or replace the entry for ``entry.fingerprint``.

        A put whose ``stored_at`` is older than the stored entry's is
        ignored, so ``stored_at`` never moves backwards.

        Args:
            entry: The entry to store
        """
        ...

    async def count_all(self) -> int:
        """Count total entries in the store.

        Returns:
            Total number of cached entries
        """
        ...

    async def health_check(self) -> bool:
        """Check if the store is accessible.

        Returns:
            True if healthy, False otherwise
        """
        ...

    async def get_stats(self) -> dict:
        """Get store statistics.

        Returns:
            Dictionary with stats (implementation-specific)
        """
        ...

    async def close(self) -> None:
        """Release connections held by the store."""
        ...
