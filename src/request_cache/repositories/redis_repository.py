"""Redis implementation of CacheStore.

Each entry is a hash at ``<prefix>:<fingerprint>`` with ``raw_response``
and ``stored_at`` fields. Entries carry no Redis TTL; staleness is decided
by the fetcher from ``stored_at``, and a stale entry stays readable until a
refresh replaces it.
"""

import logging
import re

import redis.asyncio as redis
from redis.exceptions import RedisError

from request_cache.config import get_settings
from request_cache.entities import CacheEntryEntity
from request_cache.errors import StoreError

logger = logging.getLogger(__name__)

# Atomic insert-or-replace that refuses to move stored_at backwards.
_PUT_SCRIPT = """
local current = redis.call('HGET', KEYS[1], 'stored_at')
if current and tonumber(current) > tonumber(ARGV[2]) then
    return 0
end
redis.call('HSET', KEYS[1], 'raw_response', ARGV[1], 'stored_at', ARGV[2])
return 1
"""


_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _escape_glob(text: str) -> str:
    """Escape Redis MATCH metacharacters so ``text`` matches literally."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


def get_redis_client() -> redis.Redis:
    """Create an async Redis client instance from settings."""
    settings = get_settings()
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )


class RedisCacheRepository:
    """Redis-backed store satisfying the CacheStore protocol.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        key_prefix: str | None = None,
    ) -> None:
        """Initialize the Redis cache repository.

        Args:
            redis_client: Async Redis client. If None, creates default.
            key_prefix: Prefix for entry keys. Defaults to settings.
        """
        self._client = redis_client or get_redis_client()
        self._prefix = key_prefix or get_settings().key_prefix
        self._put_script = self._client.register_script(_PUT_SCRIPT)

    @classmethod
    def create(cls, key_prefix: str | None = None) -> "RedisCacheRepository":
        """Factory method to create RedisCacheRepository with defaults.

        Args:
            key_prefix: Key prefix, e.g. one per upstream. If None, uses settings.

        Returns:
            Configured RedisCacheRepository
        """
        return cls(key_prefix=key_prefix)

    def _key(self, fingerprint: str) -> str:
        return f"{self._prefix}:{fingerprint}"

    async def get(self, fingerprint: str) -> CacheEntryEntity | None:
        try:
            fields = await self._client.hgetall(self._key(fingerprint))
        except RedisError as e:
            raise StoreError(f"Failed to read cache entry: {e}") from e

        if not fields or "raw_response" not in fields or "stored_at" not in fields:
            return None
        return CacheEntryEntity(
            fingerprint=fingerprint,
            raw_response=fields["raw_response"],
            stored_at=float(fields["stored_at"]),
        )

    async def put(self, entry: CacheEntryEntity) -> None:
        try:
            written = await self._put_script(
                keys=[self._key(entry.fingerprint)],
                args=[entry.raw_response, repr(entry.stored_at)],
            )
        except RedisError as e:
            raise StoreError(f"Failed to write cache entry: {e}") from e

        if not written:
            logger.debug("Kept newer entry for %s", entry.fingerprint)

    async def count_all(self) -> int:
        count = 0
        try:
            async for _ in self._client.scan_iter(match=f"{_escape_glob(self._prefix)}:*"):
                count += 1
        except RedisError as e:
            raise StoreError(f"Failed to count cache entries: {e}") from e
        return count

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def get_stats(self) -> dict:
        return {
            "backend": "redis",
            "key_prefix": self._prefix,
            "total_entries": await self.count_all(),
        }

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
