"""
Tests for the cache stores.
"""

from unittest.mock import AsyncMock, MagicMock

import aiosqlite
import pytest
import pytest_asyncio
from fakeredis import aioredis as fake_aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from request_cache.entities import CacheEntryEntity
from request_cache.errors import StoreError
from request_cache.protocols import CacheStore
from request_cache.repositories import InMemoryCacheRepository, RedisCacheRepository, SqliteCacheRepository

FP = '{"operation":"AnimeStat","variables":{"page":5}}'


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    """Create a SQLite store in a temporary directory."""
    store = SqliteCacheRepository(path=tmp_path / "cache" / "cache.db")
    yield store
    await store.close()


@pytest.fixture
def memory_store():
    return InMemoryCacheRepository()


@pytest_asyncio.fixture
async def fake_redis_store():
    """Create a Redis store over an in-process server that runs Lua."""
    store = RedisCacheRepository(
        redis_client=fake_aioredis.FakeRedis(decode_responses=True),
        key_prefix="rc:anilist",
    )
    yield store
    await store.close()


@pytest.fixture(params=["memory_store", "sqlite_store", "fake_redis_store"])
def any_store(request):
    """Each store implementation in turn."""
    return request.getfixturevalue(request.param)


def test_stores_satisfy_protocol(memory_store, tmp_path):
    """Every store structurally matches CacheStore."""
    assert isinstance(memory_store, CacheStore)
    assert isinstance(SqliteCacheRepository(path=tmp_path / "x.db"), CacheStore)
    assert isinstance(RedisCacheRepository(redis_client=MagicMock(), key_prefix="rc"), CacheStore)


@pytest.mark.asyncio
async def test_get_absent_returns_none(any_store):
    assert await any_store.get(FP) is None


@pytest.mark.asyncio
async def test_put_then_get(any_store):
    """A stored entry is returned verbatim."""
    entry = CacheEntryEntity(FP, '{"data":{"page":5,"count":10}}', 1000.5)
    await any_store.put(entry)
    assert await any_store.get(FP) == entry


@pytest.mark.asyncio
async def test_put_replaces_entry(any_store):
    """Insert-or-replace keeps exactly one entry per fingerprint."""
    await any_store.put(CacheEntryEntity(FP, "old", 1000.0))
    await any_store.put(CacheEntryEntity(FP, "new", 2000.0))

    assert await any_store.get(FP) == CacheEntryEntity(FP, "new", 2000.0)
    assert await any_store.count_all() == 1


@pytest.mark.asyncio
async def test_older_put_never_backdates(any_store):
    """A write older than the stored entry is ignored."""
    await any_store.put(CacheEntryEntity(FP, "newer", 2000.0))
    await any_store.put(CacheEntryEntity(FP, "older", 1000.0))

    assert await any_store.get(FP) == CacheEntryEntity(FP, "newer", 2000.0)


@pytest.mark.asyncio
async def test_entries_are_independent(any_store):
    await any_store.put(CacheEntryEntity("a", "1", 1.0))
    await any_store.put(CacheEntryEntity("b", "2", 1.0))

    assert (await any_store.get("a")).raw_response == "1"
    assert (await any_store.get("b")).raw_response == "2"
    assert await any_store.count_all() == 2


@pytest.mark.asyncio
async def test_health_and_stats(any_store):
    await any_store.put(CacheEntryEntity(FP, "x", 1.0))
    assert await any_store.health_check() is True
    stats = await any_store.get_stats()
    assert stats["total_entries"] == 1
    assert stats["backend"] in ("memory", "sqlite", "redis")


@pytest.mark.asyncio
async def test_sqlite_survives_reopen(tmp_path):
    """Entries persist across connections to the same file."""
    path = tmp_path / "cache.db"
    first = SqliteCacheRepository(path=path)
    await first.put(CacheEntryEntity(FP, "body", 1234.0))
    await first.close()

    second = SqliteCacheRepository(path=path)
    try:
        assert await second.get(FP) == CacheEntryEntity(FP, "body", 1234.0)
    finally:
        await second.close()


@pytest.mark.asyncio
async def test_sqlite_tables_are_separate(tmp_path):
    """Two tables in one file do not see each other's entries."""
    path = tmp_path / "cache.db"
    anilist = SqliteCacheRepository(path=path, table="anilist_cache")
    vndb = SqliteCacheRepository(path=path, table="vndb_cache")
    try:
        await anilist.put(CacheEntryEntity(FP, "anilist", 1.0))
        assert await vndb.get(FP) is None
        assert (await vndb.get_stats())["table"] == "vndb_cache"
    finally:
        await anilist.close()
        await vndb.close()


@pytest.mark.asyncio
async def test_sqlite_failed_rollback_keeps_store_error(sqlite_store, monkeypatch):
    """A failing rollback does not mask the write error."""
    conn = await sqlite_store._connection()
    monkeypatch.setattr(conn, "execute", AsyncMock(side_effect=aiosqlite.OperationalError("database is locked")))
    monkeypatch.setattr(conn, "rollback", AsyncMock(side_effect=aiosqlite.OperationalError("no transaction")))

    with pytest.raises(StoreError, match="database is locked"):
        await sqlite_store.put(CacheEntryEntity(FP, "body", 1.0))


def test_sqlite_rejects_bad_table_name(tmp_path):
    with pytest.raises(ValueError):
        SqliteCacheRepository(path=tmp_path / "x.db", table="cache; DROP TABLE x")


@pytest.mark.asyncio
async def test_sqlite_open_failure_is_store_error(tmp_path):
    """An unusable path surfaces as StoreError."""
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    store = SqliteCacheRepository(path=blocker / "cache.db")

    with pytest.raises(StoreError):
        await store.get(FP)
    assert await store.health_check() is False


async def _scan(*keys):
    for key in keys:
        yield key


@pytest.fixture
def redis_client():
    """Create a mocked async Redis client."""
    client = MagicMock()
    client.put_script = AsyncMock(return_value=1)
    client.register_script.return_value = client.put_script
    client.hgetall = AsyncMock(return_value={})
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    client.scan_iter = MagicMock(side_effect=lambda match: _scan("rc:anilist:a", "rc:anilist:b"))
    return client


@pytest.fixture
def redis_store(redis_client):
    return RedisCacheRepository(redis_client=redis_client, key_prefix="rc:anilist")


@pytest.mark.asyncio
async def test_redis_get_absent(redis_store, redis_client):
    assert await redis_store.get(FP) is None
    redis_client.hgetall.assert_awaited_once_with(f"rc:anilist:{FP}")


@pytest.mark.asyncio
async def test_redis_get_decodes_hash(redis_store, redis_client):
    redis_client.hgetall.return_value = {"raw_response": "body", "stored_at": "1234.5"}
    assert await redis_store.get(FP) == CacheEntryEntity(FP, "body", 1234.5)


@pytest.mark.asyncio
async def test_redis_put_runs_guarded_script(redis_store, redis_client):
    """Writes go through the registered script with the entry as arguments."""
    await redis_store.put(CacheEntryEntity(FP, "body", 1234.5))
    redis_client.put_script.assert_awaited_once_with(
        keys=[f"rc:anilist:{FP}"],
        args=["body", "1234.5"],
    )


@pytest.mark.asyncio
async def test_redis_count_escapes_prefix_pattern(redis_client):
    """Glob characters in the prefix are matched literally."""
    store = RedisCacheRepository(redis_client=redis_client, key_prefix="rc[1]*?")
    await store.count_all()
    redis_client.scan_iter.assert_called_with(match="rc\\[1\\]\\*\\?:*")


@pytest.mark.asyncio
async def test_redis_count_ignores_lookalike_prefixes():
    """Keys under a prefix the pattern would glob-match are not counted."""
    client = fake_aioredis.FakeRedis(decode_responses=True)
    starred = RedisCacheRepository(redis_client=client, key_prefix="rc*")
    other = RedisCacheRepository(redis_client=client, key_prefix="rcx")
    try:
        await starred.put(CacheEntryEntity("a", "1", 1.0))
        await other.put(CacheEntryEntity("b", "2", 1.0))
        await other.put(CacheEntryEntity("c", "3", 1.0))

        assert await starred.count_all() == 1
        assert await other.count_all() == 2
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_redis_errors_become_store_errors(redis_store, redis_client):
    redis_client.hgetall.side_effect = RedisConnectionError("refused")
    redis_client.put_script.side_effect = RedisConnectionError("refused")

    with pytest.raises(StoreError):
        await redis_store.get(FP)
    with pytest.raises(StoreError):
        await redis_store.put(CacheEntryEntity(FP, "body", 1.0))


@pytest.mark.asyncio
async def test_redis_count_health_and_close(redis_store, redis_client):
    assert await redis_store.count_all() == 2
    redis_client.scan_iter.assert_called_with(match="rc:anilist:*")
    assert await redis_store.health_check() is True

    redis_client.ping.side_effect = RedisConnectionError("down")
    assert await redis_store.health_check() is False

    await redis_store.close()
    redis_client.aclose.assert_awaited_once()
