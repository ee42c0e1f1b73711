"""Scheduled arrivals computed from the static GTFS schedule."""

import logging
import math
from datetime import datetime
from typing import List, Optional

from .destinations import normalize_headsign
from .feed_parser import parse_time_to_minutes
from .gtfs_loader import UNKNOWN_LINE
from .models import LookupTables, ScheduledArrival
from .service_calendar import service_runs
from .station_resolver import resolve_stop_times

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
# Trips this many minutes in the past are still shown
PASSED_GRACE_MINUTES = 5
# Post-midnight stop times (>= 24:00) are only shown before 02:00
POST_MIDNIGHT_CUTOFF_MINUTES = 120


def minutes_since_midnight(moment: datetime) -> float:
    return moment.hour * 60 + moment.minute + moment.second / 60


def format_clock_time(minutes: float) -> str:
    """Format minutes since midnight as a 12-hour clock string, e.g. "1:10 AM"."""
    hour, minute = divmod(int(minutes) % MINUTES_PER_DAY, 60)
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


def track_group(direction_id: Optional[int]) -> str:
    """Map a GTFS direction_id to the live API's track group."""
    return "1" if direction_id == 0 else "2"


def get_scheduled_arrivals(
    tables: LookupTables,
    station: str,
    window_minutes: int,
    now: Optional[datetime] = None,
) -> List[ScheduledArrival]:
    """
    Get scheduled arrivals at a station within the next window_minutes.

    Args:
        tables: Lookup tables snapshot.
        station: Station code, comma-separated codes for multi-level stations
            (e.g., "A01,C01"), or a GTFS station id.
        window_minutes: How far ahead to look.
        now: Current local time. Defaults to datetime.now().

    Returns:
        ScheduledArrival objects sorted by minutes_away. Unknown stations
        give an empty list.
    """
    if now is None:
        now = datetime.now()
    if not station or not station.strip():
        return []

    current_minutes = minutes_since_midnight(now)
    today = now.date()
    arrivals: List[ScheduledArrival] = []
    seen_trips = set()

    for stop_time in resolve_stop_times(tables, station):
        # A trip calling at several platforms of one station is shown once
        if stop_time.trip_id in seen_trips:
            continue

        trip = tables.trip_info.get(stop_time.trip_id)
        if trip is None:
            continue

        if not service_runs(tables, trip.service_id, today):
            continue

        arrival_minutes = parse_time_to_minutes(stop_time.arrival_time)
        if arrival_minutes is None:
            continue

        # Times past midnight (e.g., 25:30) belong to the service day that started yesterday
        if arrival_minutes >= MINUTES_PER_DAY:
            if current_minutes >= POST_MIDNIGHT_CUTOFF_MINUTES:
                continue
            arrival_minutes -= MINUTES_PER_DAY

        minutes_away = arrival_minutes - current_minutes
        if minutes_away < -PASSED_GRACE_MINUTES or minutes_away > window_minutes:
            continue

        seen_trips.add(stop_time.trip_id)

        arrivals.append(
            ScheduledArrival(
                line=tables.route_to_line.get(trip.route_id, UNKNOWN_LINE),
                destination=normalize_headsign(trip.headsign),
                minutes_away=math.floor(minutes_away + 0.5),
                scheduled_time=format_clock_time(arrival_minutes),
                group=track_group(trip.direction_id),
            )
        )

    arrivals.sort(key=lambda arrival: arrival.minutes_away)
    logger.debug(f"{len(arrivals)} scheduled arrivals for {station} in the next {window_minutes} min")
    return arrivals
