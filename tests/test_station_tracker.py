"""Tests for StationTracker."""

import unittest
from unittest.mock import AsyncMock, MagicMock, patch
from datetime import datetime
import sys
from pathlib import Path

# Add src to path so we can import metrotrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from metrotrack.cache_store import MemoryCacheStore
from metrotrack.config import TrackerConfig
from metrotrack.errors import FeedUnavailable, PredictionsUnavailable
from metrotrack.models import LiveArrival, Station
from metrotrack.polling import StationMonitor
from metrotrack.schedule_cache import ScheduleCache
from metrotrack.station_tracker import StationTracker

from feed_fixtures import corrupt_member, make_feed_zip

WEDNESDAY_8AM = datetime(2026, 10, 14, 8, 0)


class FakeClock:
    def __init__(self):
        self.now = 1_800_000_000.0

    def __call__(self):
        return self.now


class TestStationTracker(unittest.IsolatedAsyncioTestCase):
    """Test the main StationTracker class."""

    async def asyncSetUp(self):
        """Set up a tracker with an in-memory cache and a mocked API client."""
        self.config = TrackerConfig(api_key="test-key", live_refresh_seconds=15.0)
        self.clock = FakeClock()
        self.fetch = AsyncMock(return_value=make_feed_zip())

        self.client = MagicMock()
        self.client.get_predictions = AsyncMock(return_value=[])
        self.client.get_stations = AsyncMock(return_value=[])
        self.client.close = AsyncMock()

        cache = ScheduleCache(self.fetch, MemoryCacheStore(), ttl_seconds=3600, clock=self.clock)
        self.tracker = StationTracker(config=self.config, client=self.client, cache=cache)
        await self.tracker.open()

    async def asyncTearDown(self):
        await self.tracker.close()

    async def test_scheduled_arrivals(self):
        arrivals = await self.tracker.get_scheduled_arrivals("C05", 60, now=WEDNESDAY_8AM)

        self.assertEqual([a.destination for a in arrivals], ["Franconia", "Largo", "Rosslyn", "Vienna"])
        self.assertEqual(self.fetch.await_count, 1)

    async def test_default_window(self):
        arrivals = await self.tracker.get_scheduled_arrivals("C05", now=datetime(2026, 10, 12, 8, 0))
        # 80 minutes out, inside the default 90 minute window
        self.assertEqual([a.line for a in arrivals], ["SV"])

    async def test_empty_station(self):
        self.assertEqual(await self.tracker.get_scheduled_arrivals(""), [])
        self.assertEqual(await self.tracker.get_live_arrivals(""), [])
        self.fetch.assert_not_awaited()
        self.client.get_predictions.assert_not_awaited()

    async def test_get_arrivals_merges_live_and_scheduled(self):
        self.client.get_predictions.return_value = [
            LiveArrival(line="BL", destination="Franconia", min="9", group="1")
        ]

        with patch.object(self.tracker, "now", return_value=WEDNESDAY_8AM):
            arrivals = await self.tracker.get_arrivals("C05", window_minutes=60)

        self.assertEqual(
            [(a.source, a.destination, a.minutes_away) for a in arrivals],
            [("live", "Franconia", 9), ("scheduled", "Largo", 25),
             ("scheduled", "Rosslyn", 30), ("scheduled", "Vienna", 55)],
        )
        self.client.get_predictions.assert_awaited_with("C05")

    async def test_get_arrivals_filters(self):
        self.client.get_predictions.return_value = [
            LiveArrival(line="BL", destination="Franconia", min="9", group="1")
        ]

        with patch.object(self.tracker, "now", return_value=WEDNESDAY_8AM):
            blue = await self.tracker.get_arrivals("C05", window_minutes=60, lines=["BL"])
            track_one = await self.tracker.get_arrivals("C05", window_minutes=60, track="1")
            by_track = await self.tracker.get_arrivals_by_track("C05", window_minutes=60)

        self.assertEqual([a.destination for a in blue], ["Franconia", "Largo"])
        self.assertEqual([a.destination for a in track_one], ["Franconia", "Rosslyn", "Vienna"])
        self.assertEqual([a.destination for a in by_track["2"]], ["Largo"])

    async def test_live_unavailable_falls_back_to_schedule(self):
        self.client.get_predictions.side_effect = PredictionsUnavailable("HTTP 503")

        self.assertEqual(await self.tracker.get_live_arrivals("C05"), [])
        with patch.object(self.tracker, "now", return_value=WEDNESDAY_8AM):
            arrivals = await self.tracker.get_arrivals("C05", window_minutes=60)
        self.assertEqual(len(arrivals), 4)

    async def test_stale_schedule_used_when_rebuild_fails(self):
        await self.tracker.get_scheduled_arrivals("C05", 60, now=WEDNESDAY_8AM)
        self.clock.now += 7200
        self.fetch.side_effect = FeedUnavailable("HTTP 503")

        with self.assertLogs("metrotrack.station_tracker", level="WARNING"):
            arrivals = await self.tracker.get_scheduled_arrivals("C05", 60, now=WEDNESDAY_8AM)

        self.assertEqual(len(arrivals), 4)

    async def test_stale_schedule_used_when_download_is_corrupted(self):
        await self.tracker.get_scheduled_arrivals("C05", 60, now=WEDNESDAY_8AM)
        self.clock.now += 7200
        self.fetch.return_value = corrupt_member(make_feed_zip(), "stop_times.txt")

        with self.assertLogs("metrotrack.station_tracker", level="WARNING"):
            arrivals = await self.tracker.get_scheduled_arrivals("C05", 60, now=WEDNESDAY_8AM)

        self.assertEqual(len(arrivals), 4)

    async def test_rebuild_failure_without_schedule_raises(self):
        self.fetch.side_effect = FeedUnavailable("HTTP 503")

        with self.assertRaises(FeedUnavailable):
            await self.tracker.get_scheduled_arrivals("C05", 60, now=WEDNESDAY_8AM)

    async def test_invalidate_cache(self):
        self.assertIsNone(self.tracker.cache_freshness())
        await self.tracker.get_scheduled_arrivals("C05", 60, now=WEDNESDAY_8AM)
        self.assertEqual(self.tracker.cache_freshness(), datetime.fromtimestamp(self.clock.now))

        await self.tracker.invalidate_cache()
        self.assertIsNone(self.tracker.cache_freshness())

        await self.tracker.get_scheduled_arrivals("C05", 60, now=WEDNESDAY_8AM)
        self.assertEqual(self.fetch.await_count, 2)

    async def test_get_stations_groups_by_name(self):
        self.client.get_stations.return_value = [
            Station("A01", "Metro Center", ["RD"]),
            Station("C05", "Rosslyn", ["BL", "OR", "SV"]),
            Station("C01", "Metro Center", ["BL", "OR", "SV"]),
        ]

        groups = await self.tracker.get_stations()

        self.assertEqual([g.name for g in groups], ["Metro Center", "Rosslyn"])
        self.assertEqual(groups[0].code, "A01,C01")
        self.assertEqual(groups[0].line_codes, ["RD", "BL", "OR", "SV"])

    async def test_monitor_uses_config_intervals(self):
        monitor = self.tracker.monitor("C05", lambda arrivals: None)

        self.assertIsInstance(monitor, StationMonitor)
        self.assertEqual(monitor.live_interval, 15.0)
        self.assertEqual(monitor.window_minutes, self.config.default_window_minutes)
        self.assertFalse(monitor.running)

    async def test_monitor_keeps_explicit_zero_window(self):
        monitor = self.tracker.monitor("C05", lambda arrivals: None, window_minutes=0)
        self.assertEqual(monitor.window_minutes, 0)

    async def test_close_releases_client(self):
        await self.tracker.close()
        self.client.close.assert_awaited()


if __name__ == "__main__":
    unittest.main()
