"""In-process implementation of CacheStore.

Entries live in a plain dict guarded by an asyncio.Lock. Nothing survives
a restart; use the SQLite or Redis repository when that matters.
"""

import asyncio

from request_cache.entities import CacheEntryEntity


class InMemoryCacheRepository:
    """Dict-backed store satisfying the CacheStore protocol."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntryEntity] = {}
        self._lock = asyncio.Lock()

    @classmethod
    def create(cls) -> "InMemoryCacheRepository":
        """Factory method, for symmetry with the other repositories."""
        return cls()

    async def get(self, fingerprint: str) -> CacheEntryEntity | None:
        async with self._lock:
            return self._entries.get(fingerprint)

    async def put(self, entry: CacheEntryEntity) -> None:
        async with self._lock:
            current = self._entries.get(entry.fingerprint)
            if current is not None and current.stored_at > entry.stored_at:
                return
            self._entries[entry.fingerprint] = entry

    async def count_all(self) -> int:
        async with self._lock:
            return len(self._entries)

    async def health_check(self) -> bool:
        return True

    async def get_stats(self) -> dict:
        return {
            "backend": "memory",
            "total_entries": await self.count_all(),
        }

    async def close(self) -> None:
        return None
