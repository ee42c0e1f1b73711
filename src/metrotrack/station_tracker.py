"""Main WMATA Station Tracker class."""

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from .cache_store import SqliteCacheStore
from .config import TrackerConfig
from .errors import FeedError, PredictionsUnavailable
from .merge import Arrival, filter_arrivals, group_by_track, merge_arrivals
from .models import LiveArrival, ScheduledArrival, StationGroup
from .polling import StationMonitor
from .schedule import get_scheduled_arrivals
from .schedule_cache import ScheduleCache
from .station_resolver import group_stations_by_name
from .wmata_client import WMATAClient

logger = logging.getLogger(__name__)


class StationTracker:
    """
    Tracks upcoming Metrorail arrivals for a station.

    This class provides methods to:
    - Compute scheduled arrivals from the cached GTFS feed
    - Fetch live predictions
    - Merge both into one list without showing the same train twice
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        client: Optional[WMATAClient] = None,
        cache: Optional[ScheduleCache] = None,
    ):
        """
        Initialize the tracker.

        Args:
            config: Configuration. Defaults to TrackerConfig.from_env().
            client: WMATA API client. Created from config when omitted.
            cache: Schedule cache. Defaults to a SQLite-backed cache at
                config.cache_path that downloads through the client.
        """
        self.config = config or TrackerConfig.from_env()
        self.client = client or WMATAClient(self.config)
        self.cache = cache or ScheduleCache(
            fetch_archive=self.client.download_gtfs,
            store=SqliteCacheStore(self.config.cache_path),
            ttl_seconds=self.config.cache_ttl_seconds,
        )

    async def open(self) -> None:
        await self.cache.open()

    async def close(self) -> None:
        """Release network and cache resources."""
        await self.cache.close()
        await self.client.close()
        logger.info("Closed tracker resources")

    async def __aenter__(self) -> "StationTracker":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def now(self) -> datetime:
        """Current wall-clock time in the agency's timezone (naive)."""
        return datetime.now(self.config.tzinfo).replace(tzinfo=None)

    async def get_scheduled_arrivals(
        self,
        station: str,
        window_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[ScheduledArrival]:
        """
        Get scheduled arrivals for a station.

        Args:
            station: Station code or comma-separated codes (e.g., "A01,C01").
            window_minutes: How far ahead to look. Defaults to
                config.default_window_minutes.
            now: Current local time, mainly for testing.

        Returns:
            ScheduledArrival list sorted by minutes away.

        Raises:
            FeedError: If the schedule cannot be rebuilt and no earlier
                schedule is available.
        """
        if not station:
            return []
        if window_minutes is None:
            window_minutes = self.config.default_window_minutes

        try:
            tables = await self.cache.get()
        except FeedError as e:
            tables = self.cache.snapshot
            if tables is None:
                raise
            logger.warning(f"Using stale GTFS schedule: {e}")

        return get_scheduled_arrivals(tables, station, window_minutes, now or self.now())

    async def get_live_arrivals(self, station: str) -> List[LiveArrival]:
        """Get live predictions, or an empty list when the API is unavailable."""
        if not station:
            return []
        try:
            return await self.client.get_predictions(station)
        except PredictionsUnavailable as e:
            logger.warning(f"Live predictions unavailable for {station}: {e}")
            return []

    @staticmethod
    def merge_arrivals(live: List[LiveArrival], scheduled: List[ScheduledArrival]) -> List[Arrival]:
        return merge_arrivals(live, scheduled)

    async def get_arrivals(
        self,
        station: str,
        window_minutes: Optional[int] = None,
        lines: Optional[Iterable[str]] = None,
        track: Optional[str] = None,
    ) -> List[Arrival]:
        """
        Get live and scheduled arrivals for a station, merged and filtered.

        Args:
            station: Station code or comma-separated codes.
            window_minutes: How far ahead scheduled arrivals reach.
            lines: Line codes to keep (e.g., ["BL", "SV"]). All when empty.
            track: Track group to keep ("1" or "2"). Both when None.
        """
        live = await self.get_live_arrivals(station)
        scheduled = await self.get_scheduled_arrivals(station, window_minutes)
        return filter_arrivals(merge_arrivals(live, scheduled), lines=lines, track=track)

    async def get_arrivals_by_track(self, station: str, **kwargs) -> Dict[str, List[Arrival]]:
        """Get merged arrivals grouped by track ("1" and "2")."""
        return group_by_track(await self.get_arrivals(station, **kwargs))

    async def get_stations(self) -> List[StationGroup]:
        """Get rail stations, with multi-level stations combined under one entry."""
        return group_stations_by_name(await self.client.get_stations())

    async def invalidate_cache(self) -> None:
        """Discard the cached schedule; the next query downloads a new feed."""
        await self.cache.invalidate()

    def cache_freshness(self) -> Optional[datetime]:
        """When the cached schedule was built, or None."""
        return self.cache.freshness()

    def monitor(self, station: str, on_update: Callable, window_minutes: Optional[int] = None) -> StationMonitor:
        """
        Create a StationMonitor that polls this station.

        Call start() on the returned monitor to begin polling.
        """
        if window_minutes is None:
            window_minutes = self.config.default_window_minutes
        return StationMonitor(
            self,
            station,
            on_update,
            window_minutes=window_minutes,
            live_interval=self.config.live_refresh_seconds,
            schedule_interval=self.config.schedule_refresh_seconds,
        )
