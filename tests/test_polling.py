"""Tests for StationMonitor polling."""

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock
import sys
from pathlib import Path

# Add src to path so we can import metrotrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from metrotrack.models import LiveArrival, ScheduledArrival
from metrotrack.polling import StationMonitor

LIVE = [LiveArrival(line="BL", destination="Franconia", min="3", group="1")]
SCHEDULED = [ScheduledArrival(line="OR", destination="Vienna", minutes_away=40, scheduled_time="8:40 AM", group="1")]


def make_tracker():
    tracker = MagicMock()
    tracker.get_live_arrivals = AsyncMock(return_value=LIVE)
    tracker.get_scheduled_arrivals = AsyncMock(return_value=SCHEDULED)
    return tracker


class TestStationMonitor(unittest.IsolatedAsyncioTestCase):
    """Test the polling loops."""

    async def test_publishes_merged_arrivals(self):
        tracker = make_tracker()
        updates = []
        both_ran = asyncio.Event()

        def on_update(arrivals):
            updates.append(arrivals)
            if len(updates) >= 2:
                both_ran.set()

        monitor = StationMonitor(tracker, "C05", on_update, window_minutes=60, live_interval=60, schedule_interval=60)
        await monitor.start()
        self.assertTrue(monitor.running)
        await asyncio.wait_for(both_ran.wait(), timeout=1)
        await monitor.stop()

        self.assertFalse(monitor.running)
        self.assertEqual([a.source for a in updates[-1]], ["live", "scheduled"])
        self.assertEqual(monitor.arrivals, updates[-1])
        tracker.get_live_arrivals.assert_awaited_with("C05")
        tracker.get_scheduled_arrivals.assert_awaited_with("C05", 60)

    async def test_async_callback(self):
        received = asyncio.Event()
        on_update = AsyncMock(side_effect=lambda arrivals: received.set())

        monitor = StationMonitor(make_tracker(), "C05", on_update, live_interval=60, schedule_interval=60)
        await monitor.start()
        await asyncio.wait_for(received.wait(), timeout=1)
        await monitor.stop()

        on_update.assert_awaited()

    async def test_failed_tick_does_not_stop_polling(self):
        tracker = make_tracker()
        tracker.get_live_arrivals.side_effect = [RuntimeError("network down"), LIVE, LIVE, LIVE]
        live_seen = asyncio.Event()

        def on_update(arrivals):
            if any(a.source == "live" for a in arrivals):
                live_seen.set()

        monitor = StationMonitor(tracker, "C05", on_update, live_interval=0.01, schedule_interval=60)
        with self.assertLogs("metrotrack.polling", level="WARNING"):
            await monitor.start()
            await asyncio.wait_for(live_seen.wait(), timeout=1)
        await monitor.stop()

        self.assertGreaterEqual(tracker.get_live_arrivals.await_count, 2)

    async def test_failing_callback_does_not_stop_polling(self):
        tracker = make_tracker()
        calls = 0
        recovered = asyncio.Event()

        def on_update(arrivals):
            nonlocal calls
            calls += 1
            if calls <= 2:
                raise ValueError("display unavailable")
            recovered.set()

        monitor = StationMonitor(tracker, "C05", on_update, live_interval=0.01, schedule_interval=0.01)
        with self.assertLogs("metrotrack.polling", level="WARNING") as logs:
            await monitor.start()
            await asyncio.wait_for(recovered.wait(), timeout=1)

        self.assertTrue(monitor.running)
        await monitor.stop()
        self.assertGreater(calls, 2)
        self.assertTrue(any("display unavailable" in line for line in logs.output))

    async def test_change_station_resets_results(self):
        tracker = make_tracker()
        updated = asyncio.Event()
        monitor = StationMonitor(tracker, "C05", lambda arrivals: updated.set(), live_interval=60, schedule_interval=60)
        await monitor.start()
        await asyncio.wait_for(updated.wait(), timeout=1)

        await monitor.change_station("A01,C01")

        self.assertEqual(monitor.station, "A01,C01")
        self.assertEqual(monitor.live, [])
        self.assertEqual(monitor.scheduled, [])
        self.assertTrue(monitor.running)

        updated.clear()
        await asyncio.wait_for(updated.wait(), timeout=1)
        await monitor.stop()
        self.assertIn("A01,C01", [call.args[0] for call in tracker.get_live_arrivals.await_args_list])

    async def test_stop_without_start(self):
        monitor = StationMonitor(make_tracker(), "C05", lambda arrivals: None)
        await monitor.stop()
        self.assertFalse(monitor.running)


if __name__ == "__main__":
    unittest.main()
