"""GTFS static data loader and index builder for WMATA rail data."""

import logging
from pathlib import Path
from typing import Dict, List, Tuple, Union

from .feed_parser import parse_feed, parse_tables, REQUIRED_TABLES, OPTIONAL_TABLES
from .models import LookupTables, ParsedFeed, Route, ServiceExceptions, StopTime, TripInfo, ExceptionType

logger = logging.getLogger(__name__)

# WMATA GTFS route_id (or route name) -> rail line code
LINE_CODES = {
    "RED": "RD",
    "ORANGE": "OR",
    "YELLOW": "YL",
    "GREEN": "GR",
    "BLUE": "BL",
    "SILVER": "SV",
}
UNKNOWN_LINE = "XX"


def route_line_code(route: Route) -> str:
    """Map a route to its line code, falling back to the route names, then UNKNOWN_LINE."""
    code = LINE_CODES.get(route.route_id.upper())
    if code:
        return code
    for name in (route.short_name, route.long_name):
        code = LINE_CODES.get(name.strip().upper())
        if code:
            return code
    return UNKNOWN_LINE


def build_lookup_tables(feed: ParsedFeed) -> LookupTables:
    """Build the indexed lookup tables from parsed GTFS records."""
    # Map stop_id to station (parent_station or self)
    # WMATA uses platform-specific stop IDs grouped under STN_ parents
    stop_to_station: Dict[str, str] = {}
    station_stops: Dict[str, List[str]] = {}

    for stop in feed.stops:
        station_id = stop.parent_station or stop.stop_id
        stop_to_station[stop.stop_id] = station_id
        stops = station_stops.setdefault(station_id, [])
        if stop.stop_id not in stops:
            stops.append(stop.stop_id)

    route_to_line: Dict[str, str] = {}
    unknown_routes = []
    for route in feed.routes:
        route_to_line[route.route_id] = route_line_code(route)
        if route_to_line[route.route_id] == UNKNOWN_LINE:
            unknown_routes.append(route.route_id)
    if unknown_routes:
        logger.debug(f"Routes without a known line code: {unknown_routes}")

    trip_info = {
        trip.trip_id: TripInfo(
            route_id=trip.route_id,
            service_id=trip.service_id,
            direction_id=trip.direction_id,
            headsign=trip.headsign,
        )
        for trip in feed.trips
    }

    service_calendar = {cal.service_id: cal for cal in feed.calendar}

    # Calendar exceptions (additions and removals)
    exceptions: Dict[str, Tuple[List[str], List[str]]] = {}
    for exception in feed.calendar_dates:
        added, removed = exceptions.setdefault(exception.service_id, ([], []))
        if exception.exception_type == ExceptionType.ADDED:
            added.append(exception.date)
        else:
            removed.append(exception.date)

    calendar_exceptions = {
        service_id: ServiceExceptions(added=added, removed=removed)
        for service_id, (added, removed) in exceptions.items()
    }

    # Group stop_times by station so platforms of one station share a bucket
    stop_times_by_station: Dict[str, List[StopTime]] = {}
    for stop_time in feed.stop_times:
        station_id = stop_to_station.get(stop_time.stop_id, stop_time.stop_id)
        stop_times_by_station.setdefault(station_id, []).append(stop_time)

    logger.info(
        f"Indexed {len(station_stops)} stations, {len(trip_info)} trips, "
        f"{len(service_calendar)} weekly calendars, {len(calendar_exceptions)} services with exceptions"
    )

    return LookupTables(
        stop_to_station=stop_to_station,
        station_stops=station_stops,
        route_to_line=route_to_line,
        trip_info=trip_info,
        service_calendar=service_calendar,
        calendar_exceptions=calendar_exceptions,
        stop_times_by_station=stop_times_by_station,
    )


class GTFSLoader:
    """Loads a WMATA GTFS static feed and builds lookup tables from it."""

    def load_from_bytes(self, archive_bytes: bytes) -> LookupTables:
        """Parse a downloaded GTFS zip archive and index it."""
        feed = parse_feed(archive_bytes)
        return build_lookup_tables(feed)

    def load_from_files(self, directory: Union[str, Path]) -> LookupTables:
        """Load GTFS data from a directory of extracted .txt files."""
        directory = Path(directory)
        logger.info(f"Loading GTFS data from {directory}")
        tables = {}
        for table in list(REQUIRED_TABLES) + list(OPTIONAL_TABLES):
            path = directory / table
            if path.exists():
                tables[table] = path.read_bytes()
        return build_lookup_tables(parse_tables(tables))
