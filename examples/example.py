"""Example usage of StationTracker."""

import asyncio
import logging
import sys
from pathlib import Path

# Add src to path so we can import metrotrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from metrotrack import FeedError, StationTracker
from metrotrack.merge import track_label

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


async def find_station(tracker: StationTracker, station_input: str) -> str:
    """Resolve a station name (partial match) to its codes; codes pass through."""
    for group in await tracker.get_stations():
        if station_input.lower() in group.name.lower():
            print(f"Station: {group.name} ({group.code})")
            return group.code
    return station_input


async def print_station_data(station_input: str, window_minutes: int = 60):
    """
    Fetch and display merged live and scheduled arrivals for a station.

    Args:
        station_input: Station name or code(s) (e.g., "Metro Center" or "A01,C01")
        window_minutes: How far ahead to show scheduled trains
    """
    print(f"\n{'='*70}")
    print(f"Fetching data for: {station_input}")
    print(f"{'='*70}\n")

    async with StationTracker() as tracker:
        try:
            station = await find_station(tracker, station_input)
            by_track = await tracker.get_arrivals_by_track(station, window_minutes=window_minutes)
        except FeedError as e:
            logger.error(f"Failed to load schedule: {e}")
            print(f"Error: {e}")
            sys.exit(1)

        freshness = tracker.cache_freshness()
        if freshness:
            print(f"Schedule built: {freshness.strftime('%Y-%m-%d %H:%M')}\n")

        for group, trains in by_track.items():
            if not trains:
                continue
            print(f"Track {group}: {track_label(trains)}")
            print("-" * 70)
            for train in trains:
                when = train.min if train.source == "live" else f"{train.min} ({train.scheduled_time})"
                print(f"  {train.line}  {train.destination:<20} {when:<16} {train.source}")
            print()

        if not any(by_track.values()):
            print("  No arrivals found")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python examples/example.py <station name or codes> [window minutes]")
        sys.exit(1)
    window = int(sys.argv[2]) if len(sys.argv) > 2 else 60
    asyncio.run(print_station_data(sys.argv[1], window))
