"""Schedule cache: persisted lookup tables with a freshness TTL."""

import asyncio
import logging
import time
from datetime import datetime
from typing import Awaitable, Callable, Optional

from .errors import FeedError
from .gtfs_loader import GTFSLoader
from .models import LookupTables

logger = logging.getLogger(__name__)

CACHE_DURATION_SECONDS = 24 * 60 * 60


class ScheduleCache:
    """
    Serves GTFS lookup tables, rebuilding them when missing or stale.

    Lifecycle: open() -> get()/invalidate() -> close(). Only one rebuild runs
    at a time; concurrent get() calls share it. A failed rebuild leaves the
    previous tables in place and raises to every caller waiting on it.

    invalidate() starts a new generation. A load or rebuild that began in an
    earlier generation still answers the callers waiting on it, but never
    publishes or persists its tables.
    """

    def __init__(
        self,
        fetch_archive: Callable[[], Awaitable[bytes]],
        store,
        loader: Optional[GTFSLoader] = None,
        ttl_seconds: int = CACHE_DURATION_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            fetch_archive: Coroutine function returning the GTFS zip bytes.
            store: A SqliteCacheStore or MemoryCacheStore.
            loader: Builds lookup tables from archive bytes.
            ttl_seconds: Maximum age of cached tables.
            clock: Returns the current Unix time in seconds.
        """
        self._fetch_archive = fetch_archive
        self._store = store
        self._loader = loader or GTFSLoader()
        self._ttl_ms = ttl_seconds * 1000
        self._clock = clock

        self._tables: Optional[LookupTables] = None
        self._timestamp_ms: Optional[int] = None
        self._store_checked = False
        self._generation = 0
        self._refresh: Optional[asyncio.Future] = None

    async def open(self) -> None:
        """Open the store and pick up the timestamp of any persisted tables."""
        await self._store.open()
        if self._tables is None:
            self._timestamp_ms = await self._store.read_timestamp()

    async def close(self) -> None:
        if self._refresh is not None and not self._refresh.done():
            self._refresh.cancel()
        await self._store.close()

    async def __aenter__(self) -> "ScheduleCache":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def snapshot(self) -> Optional[LookupTables]:
        """The most recently published tables, fresh or not."""
        return self._tables

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _is_fresh(self, timestamp_ms: Optional[int]) -> bool:
        return timestamp_ms is not None and self._now_ms() - timestamp_ms < self._ttl_ms

    def is_fresh(self) -> bool:
        """Whether fresh tables are loaded in memory."""
        return self._tables is not None and self._is_fresh(self._timestamp_ms)

    def freshness(self) -> Optional[datetime]:
        """When the current tables were built, or None.

        Before the first get() this is the timestamp of the persisted tables.
        """
        if self._timestamp_ms is None:
            return None
        return datetime.fromtimestamp(self._timestamp_ms / 1000)

    async def get(self) -> LookupTables:
        """
        Get the current lookup tables.

        Raises:
            FeedUnavailable: If a needed rebuild could not download the feed.
            MalformedFeed: If a needed rebuild could not parse the feed.
        """
        if self.is_fresh():
            return self._tables

        if self._refresh is None:
            refresh = asyncio.ensure_future(self._refresh_tables(self._generation))
            refresh.add_done_callback(self._refresh_finished)
            self._refresh = refresh
        else:
            logger.debug("Waiting for in-flight GTFS refresh")

        # Shield so one caller giving up does not cancel the shared refresh
        return await asyncio.shield(self._refresh)

    async def invalidate(self) -> None:
        """Drop cached tables in memory and on disk; the next get() rebuilds."""
        self._generation += 1
        self._tables = None
        self._timestamp_ms = None
        self._store_checked = True
        # Callers from here on must not join a refresh started before the invalidation
        self._refresh = None
        await self._store.clear()
        logger.info("Cleared GTFS schedule cache")

    async def _load_from_store(self, generation: int) -> None:
        self._store_checked = True
        stored = await self._store.read_bundle()
        if stored is None:
            return

        payload, timestamp_ms = stored
        loop = asyncio.get_running_loop()
        try:
            tables = await loop.run_in_executor(None, LookupTables.from_json, payload)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable cached GTFS tables: {e}")
            if generation == self._generation:
                self._timestamp_ms = None
            return

        if generation != self._generation:
            logger.debug("Discarding cached GTFS tables read before invalidation")
            return

        self._tables = tables
        self._timestamp_ms = timestamp_ms
        state = "fresh" if self._is_fresh(timestamp_ms) else "stale"
        logger.info(f"Loaded {state} GTFS tables from cache (built {self.freshness()})")

    async def _refresh_tables(self, generation: int) -> LookupTables:
        if not self._store_checked:
            await self._load_from_store(generation)
            if self.is_fresh():
                return self._tables
        return await self._rebuild_tables(generation)

    async def _rebuild_tables(self, generation: int) -> LookupTables:
        try:
            archive = await self._fetch_archive()
            loop = asyncio.get_running_loop()
            tables = await loop.run_in_executor(None, self._loader.load_from_bytes, archive)
            payload = await loop.run_in_executor(None, tables.to_json)
        except FeedError as e:
            logger.error(f"GTFS rebuild failed: {e}")
            raise

        if generation != self._generation:
            logger.info("Cache invalidated during rebuild; not publishing rebuilt tables")
            return tables

        timestamp_ms = self._now_ms()
        await self._store.write_bundle(payload, timestamp_ms)
        if generation != self._generation:
            return tables

        # Publish only after the new bundle is persisted
        self._tables = tables
        self._timestamp_ms = timestamp_ms
        logger.info("Rebuilt GTFS lookup tables")
        return tables

    def _refresh_finished(self, task: asyncio.Future) -> None:
        if self._refresh is task:
            self._refresh = None
        # Mark the exception as retrieved even if every waiter was cancelled
        if not task.cancelled():
            task.exception()
