"""SQLite implementation of CacheStore.

One long-lived aiosqlite connection per repository, opened on first use.
The cache table is created lazily, so pointing the repository at a fresh
file is enough. Writes are serialised with a semaphore; reads share the
connection.
"""

import asyncio
import logging
import re
from pathlib import Path

import aiosqlite

from request_cache.config import get_settings
from request_cache.entities import CacheEntryEntity
from request_cache.errors import StoreError

logger = logging.getLogger(__name__)

_PRAGMAS = [
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
]

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    fingerprint TEXT PRIMARY KEY,
    raw_response TEXT NOT NULL,
    stored_at REAL NOT NULL
)
"""

# stored_at never moves backwards: an older write loses to a newer one.
_UPSERT = """
INSERT INTO {table} (fingerprint, raw_response, stored_at) VALUES (?, ?, ?)
ON CONFLICT(fingerprint) DO UPDATE SET
    raw_response = excluded.raw_response,
    stored_at = excluded.stored_at
WHERE excluded.stored_at >= {table}.stored_at
"""


class SqliteCacheRepository:
    """SQLite-backed store satisfying the CacheStore protocol."""

    def __init__(self, path: str | Path | None = None, table: str = "request_cache") -> None:
        """Initialize the SQLite cache repository.

        Args:
            path: Database file, or ":memory:". Defaults to settings.
            table: Table holding the entries, e.g. one per upstream.
        """
        if not _TABLE_NAME.match(table):
            raise ValueError(f"Invalid table name: {table!r}")

        self._path = str(path or get_settings().sqlite_path)
        self._table = table
        self._conn: aiosqlite.Connection | None = None
        self._open_lock = asyncio.Lock()
        self._write_sem = asyncio.Semaphore(1)

    @classmethod
    def create(cls, path: str | Path | None = None, table: str = "request_cache") -> "SqliteCacheRepository":
        """Factory method to create SqliteCacheRepository with defaults.

        Args:
            path: Database file. If None, uses settings.
            table: Table name.

        Returns:
            Configured SqliteCacheRepository
        """
        return cls(path=path, table=table)

    async def _connection(self) -> aiosqlite.Connection:
        if self._conn is not None:
            return self._conn

        async with self._open_lock:
            if self._conn is not None:
                return self._conn
            try:
                if self._path != ":memory:":
                    Path(self._path).parent.mkdir(parents=True, exist_ok=True)
                conn = await aiosqlite.connect(self._path)
            except (aiosqlite.Error, OSError) as e:
                raise StoreError(f"Failed to open SQLite cache at {self._path}: {e}") from e

            try:
                for pragma in _PRAGMAS:
                    await conn.execute(pragma)
                await conn.execute(_CREATE_TABLE.format(table=self._table))
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.close()
                raise StoreError(f"Failed to create cache table {self._table}: {e}") from e

            logger.info("Opened SQLite cache %s at %s", self._table, self._path)
            self._conn = conn
            return conn

    async def get(self, fingerprint: str) -> CacheEntryEntity | None:
        conn = await self._connection()
        try:
            async with conn.execute(
                f"SELECT raw_response, stored_at FROM {self._table} WHERE fingerprint = ?",
                (fingerprint,),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to read cache entry: {e}") from e

        if row is None:
            return None
        return CacheEntryEntity(fingerprint=fingerprint, raw_response=row[0], stored_at=float(row[1]))

    async def put(self, entry: CacheEntryEntity) -> None:
        conn = await self._connection()
        async with self._write_sem:
            try:
                await conn.execute(
                    _UPSERT.format(table=self._table),
                    (entry.fingerprint, entry.raw_response, entry.stored_at),
                )
                await conn.commit()
            except aiosqlite.Error as e:
                try:
                    await conn.rollback()
                except aiosqlite.Error as rollback_error:
                    logger.warning("Rollback after failed write also failed: %s", rollback_error)
                raise StoreError(f"Failed to write cache entry: {e}") from e

    async def count_all(self) -> int:
        conn = await self._connection()
        try:
            async with conn.execute(f"SELECT COUNT(*) FROM {self._table}") as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to count cache entries: {e}") from e
        return int(row[0]) if row else 0

    async def health_check(self) -> bool:
        try:
            await self.count_all()
        except StoreError:
            return False
        return True

    async def get_stats(self) -> dict:
        return {
            "backend": "sqlite",
            "path": self._path,
            "table": self._table,
            "total_entries": await self.count_all(),
        }

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
