"""WMATA API client: GTFS static download, live predictions and station list."""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Tuple

import aiohttp

from .config import TrackerConfig
from .errors import FeedUnavailable, PredictionsUnavailable
from .models import LiveArrival, Station

logger = logging.getLogger(__name__)

PREDICTIONS_PATH = "/StationPrediction.svc/json/GetPrediction/{codes}"
STATIONS_PATH = "/Rail.svc/json/jStations"


class WMATAClient:
    """Fetches WMATA rail data over HTTP."""

    def __init__(self, config: TrackerConfig, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the client.

        Args:
            config: Tracker configuration (API key, URLs, timeouts).
            session: Optional session to use. A session created by the client
                is closed by close(); a passed-in session is left open.
        """
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._cache: Dict[str, Tuple[List[LiveArrival], float]] = {}  # codes -> (trains, timestamp)
        self._cache_ttl = config.predictions_cache_seconds
        self._max_cache_size = 10

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.request_timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    def _headers(self) -> Dict[str, str]:
        return {"api_key": self.config.api_key}

    async def download_gtfs(self) -> bytes:
        """
        Download the GTFS static archive.

        Returns:
            Raw zip bytes.

        Raises:
            FeedUnavailable: If no API key is configured or the download fails.
        """
        if not self.config.api_key:
            raise FeedUnavailable("WMATA API key not configured")

        logger.info(f"Downloading GTFS data from {self.config.gtfs_url}")
        try:
            async with self._get_session().get(self.config.gtfs_url, headers=self._headers()) as response:
                if response.status != 200:
                    raise FeedUnavailable(f"Failed to download GTFS: HTTP {response.status}")
                data = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to download GTFS data: {e}")
            raise FeedUnavailable(f"Failed to download GTFS: {e}") from e

        logger.info(f"Downloaded GTFS archive ({len(data)} bytes)")
        return data

    async def _get_json(self, path: str) -> dict:
        if not self.config.api_key:
            raise PredictionsUnavailable("WMATA API key not configured")

        url = f"{self.config.api_base_url}{path}"
        try:
            async with self._get_session().get(url, headers=self._headers()) as response:
                if response.status != 200:
                    raise PredictionsUnavailable(f"Request to {path} failed: HTTP {response.status}")
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise PredictionsUnavailable(f"Request to {path} failed: {e}") from e

    async def get_predictions(self, station_codes: str) -> List[LiveArrival]:
        """
        Get live predictions for a station.

        Args:
            station_codes: One code or comma-separated codes (e.g., "A01,C01").

        Returns:
            List of LiveArrival objects in API order.
        """
        now = time.time()
        if station_codes in self._cache:
            trains, timestamp = self._cache[station_codes]
            if now - timestamp < self._cache_ttl:
                logger.debug(f"Using cached predictions for {station_codes}")
                return list(trains)

        self._evict_expired_cache(now)
        if len(self._cache) >= self._max_cache_size:
            oldest_key = min(self._cache.keys(), key=lambda k: self._cache[k][1])
            del self._cache[oldest_key]

        data = await self._get_json(PREDICTIONS_PATH.format(codes=station_codes))
        trains = [self._parse_prediction(item) for item in data.get("Trains") or []]
        self._cache[station_codes] = (trains, now)
        return list(trains)

    @staticmethod
    def _parse_prediction(item: dict) -> LiveArrival:
        return LiveArrival(
            line=item.get("Line") or "",
            destination=item.get("Destination") or item.get("DestinationName") or "",
            min=item.get("Min") or "",
            group=str(item.get("Group") or ""),
            car=item.get("Car") or None,
        )

    async def get_stations(self) -> List[Station]:
        """Get all rail stations."""
        data = await self._get_json(STATIONS_PATH)
        stations = []
        for item in data.get("Stations") or []:
            lines = [item.get(f"LineCode{i}") for i in range(1, 5)]
            stations.append(
                Station(
                    code=item.get("Code", ""),
                    name=item.get("Name", ""),
                    line_codes=[line for line in lines if line],
                )
            )
        return stations

    def _evict_expired_cache(self, current_time: float) -> None:
        """Remove expired cache entries."""
        expired_keys = [
            codes for codes, (_, timestamp) in self._cache.items()
            if current_time - timestamp >= self._cache_ttl
        ]
        for key in expired_keys:
            del self._cache[key]

    def clear_cache(self) -> None:
        """Manually clear the predictions cache."""
        self._cache.clear()

    async def close(self) -> None:
        self.clear_cache()
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
