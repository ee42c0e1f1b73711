"""Persistent key/value storage for the schedule cache."""

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import aiosqlite

logger = logging.getLogger(__name__)

BUNDLE_KEY = "lookupTables"
TIMESTAMP_KEY = "lastUpdated"


class SqliteCacheStore:
    """Stores the lookup tables bundle and its timestamp in a SQLite file."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self._conn: Optional[aiosqlite.Connection] = None

    async def open(self) -> None:
        if self._conn is not None:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self.db_path))
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute(
            "CREATE TABLE IF NOT EXISTS gtfs_cache (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        await self._conn.commit()
        logger.debug(f"Opened schedule cache at {self.db_path}")

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Cache store is not open")
        return self._conn

    async def read_bundle(self) -> Optional[Tuple[str, int]]:
        """Return (payload, timestamp_ms), or None when nothing is stored."""
        conn = self._connection()
        async with conn.execute(
            "SELECT key, value FROM gtfs_cache WHERE key IN (?, ?)", (BUNDLE_KEY, TIMESTAMP_KEY)
        ) as cursor:
            rows = dict(await cursor.fetchall())

        if BUNDLE_KEY not in rows or TIMESTAMP_KEY not in rows:
            return None
        try:
            return rows[BUNDLE_KEY], int(rows[TIMESTAMP_KEY])
        except ValueError:
            logger.warning(f"Ignoring invalid cache timestamp {rows[TIMESTAMP_KEY]!r}")
            return None

    async def read_timestamp(self) -> Optional[int]:
        """Return when the stored bundle was built, without loading the payload."""
        conn = self._connection()
        async with conn.execute(
            "SELECT value FROM gtfs_cache WHERE key = ? AND EXISTS "
            "(SELECT 1 FROM gtfs_cache WHERE key = ?)",
            (TIMESTAMP_KEY, BUNDLE_KEY),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None
        try:
            return int(row[0])
        except ValueError:
            return None

    async def write_bundle(self, payload: str, timestamp_ms: int) -> None:
        """Store the payload and timestamp together in one transaction."""
        conn = self._connection()
        try:
            await conn.executemany(
                "INSERT OR REPLACE INTO gtfs_cache (key, value) VALUES (?, ?)",
                [(BUNDLE_KEY, payload), (TIMESTAMP_KEY, str(timestamp_ms))],
            )
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise

    async def clear(self) -> None:
        conn = self._connection()
        await conn.execute("DELETE FROM gtfs_cache")
        await conn.commit()

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None


class MemoryCacheStore:
    """In-process store with the same interface as SqliteCacheStore."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def open(self) -> None:
        pass

    async def read_bundle(self) -> Optional[Tuple[str, int]]:
        if BUNDLE_KEY not in self._data or TIMESTAMP_KEY not in self._data:
            return None
        return self._data[BUNDLE_KEY], int(self._data[TIMESTAMP_KEY])

    async def read_timestamp(self) -> Optional[int]:
        if BUNDLE_KEY not in self._data or TIMESTAMP_KEY not in self._data:
            return None
        return int(self._data[TIMESTAMP_KEY])

    async def write_bundle(self, payload: str, timestamp_ms: int) -> None:
        self._data = {BUNDLE_KEY: payload, TIMESTAMP_KEY: str(timestamp_ms)}

    async def clear(self) -> None:
        self._data = {}

    async def close(self) -> None:
        pass
