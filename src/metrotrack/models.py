"""Data models for MetroTrack."""

import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional

# Sort key for live predictions with no usable minute value
UNKNOWN_MINUTES = 999


@dataclass
class Stop:
    """A stop (platform or station) from stops.txt."""
    stop_id: str
    parent_station: Optional[str] = None


@dataclass
class StopTime:
    """A scheduled call of a trip at a stop."""
    trip_id: str
    stop_id: str
    arrival_time: str  # H:MM:SS, may exceed 24:00:00
    departure_time: str
    stop_sequence: int


@dataclass
class Trip:
    """A trip from trips.txt."""
    trip_id: str
    route_id: str
    service_id: str
    direction_id: Optional[int] = None
    headsign: str = ""


@dataclass
class Route:
    """A route from routes.txt."""
    route_id: str
    short_name: str = ""
    long_name: str = ""


@dataclass
class ServiceCalendar:
    """Weekly service pattern from calendar.txt."""
    service_id: str
    weekdays: List[int]  # date.weekday() numbering, Monday = 0
    start_date: str  # YYYYMMDD
    end_date: str  # YYYYMMDD


class ExceptionType(IntEnum):
    ADDED = 1
    REMOVED = 2


@dataclass
class CalendarException:
    """A single-date override from calendar_dates.txt."""
    service_id: str
    date: str  # YYYYMMDD
    exception_type: ExceptionType


@dataclass
class ParsedFeed:
    """Typed records from one GTFS archive."""
    stops: List[Stop] = field(default_factory=list)
    stop_times: List[StopTime] = field(default_factory=list)
    trips: List[Trip] = field(default_factory=list)
    routes: List[Route] = field(default_factory=list)
    calendar: List[ServiceCalendar] = field(default_factory=list)
    calendar_dates: List[CalendarException] = field(default_factory=list)
    parse_errors: Dict[str, int] = field(default_factory=dict)  # table -> skipped rows


@dataclass(frozen=True)
class TripInfo:
    route_id: str
    service_id: str
    direction_id: Optional[int]
    headsign: str


@dataclass(frozen=True)
class ServiceExceptions:
    added: List[str]
    removed: List[str]


@dataclass(frozen=True)
class LookupTables:
    """
    Indexed schedule data built from one GTFS feed.

    A bundle is never modified after it is built. Rebuilding produces a new
    bundle that replaces the old one.
    """
    stop_to_station: Dict[str, str]
    station_stops: Dict[str, List[str]]
    route_to_line: Dict[str, str]
    trip_info: Dict[str, TripInfo]
    service_calendar: Dict[str, ServiceCalendar]
    calendar_exceptions: Dict[str, ServiceExceptions]
    stop_times_by_station: Dict[str, List[StopTime]]

    def to_json(self) -> str:
        """Serialize to a deterministic JSON string."""
        payload = {
            "stopToStation": self.stop_to_station,
            "stationStops": self.station_stops,
            "routeToLine": self.route_to_line,
            "tripInfo": {
                trip_id: [info.route_id, info.service_id, info.direction_id, info.headsign]
                for trip_id, info in self.trip_info.items()
            },
            "serviceCalendar": {
                service_id: [cal.weekdays, cal.start_date, cal.end_date]
                for service_id, cal in self.service_calendar.items()
            },
            "calendarExceptions": {
                service_id: {"added": ex.added, "removed": ex.removed}
                for service_id, ex in self.calendar_exceptions.items()
            },
            # Stop times are stored as positional lists to keep the payload small
            "stopTimesByStation": {
                station_id: [
                    [st.trip_id, st.stop_id, st.arrival_time, st.departure_time, st.stop_sequence]
                    for st in stop_times
                ]
                for station_id, stop_times in self.stop_times_by_station.items()
            },
        }
        return json.dumps(payload, sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_json(cls, payload: str) -> "LookupTables":
        """Restore a bundle produced by to_json()."""
        data = json.loads(payload)
        return cls(
            stop_to_station=data["stopToStation"],
            station_stops=data["stationStops"],
            route_to_line=data["routeToLine"],
            trip_info={
                trip_id: TripInfo(route_id, service_id, direction_id, headsign)
                for trip_id, (route_id, service_id, direction_id, headsign) in data["tripInfo"].items()
            },
            service_calendar={
                service_id: ServiceCalendar(service_id, weekdays, start_date, end_date)
                for service_id, (weekdays, start_date, end_date) in data["serviceCalendar"].items()
            },
            calendar_exceptions={
                service_id: ServiceExceptions(added=ex["added"], removed=ex["removed"])
                for service_id, ex in data["calendarExceptions"].items()
            },
            stop_times_by_station={
                station_id: [StopTime(*row) for row in rows]
                for station_id, rows in data["stopTimesByStation"].items()
            },
        )


@dataclass
class ScheduledArrival:
    """An arrival computed from the static schedule."""
    line: str
    destination: str
    minutes_away: int
    scheduled_time: str  # e.g. "1:10 AM"
    group: str  # track group, "1" or "2"
    car: Optional[str] = None  # not available in the schedule
    source: str = "scheduled"

    @property
    def min(self) -> str:
        """Display value in the live API's format."""
        return "ARR" if self.minutes_away <= 0 else str(self.minutes_away)


@dataclass
class LiveArrival:
    """A real-time prediction from the WMATA StationPrediction API."""
    line: str
    destination: str
    min: str  # "ARR", "BRD", "---", "" or a number of minutes
    group: str
    car: Optional[str] = None
    source: str = "live"

    @property
    def minutes_away(self) -> int:
        status = (self.min or "").strip().upper()
        if status in ("ARR", "BRD"):
            return 0
        try:
            return int(status)
        except ValueError:
            return UNKNOWN_MINUTES


@dataclass
class Station:
    """A station record from the WMATA station list."""
    code: str
    name: str
    line_codes: List[str] = field(default_factory=list)


@dataclass
class StationGroup:
    """A rider-facing station spanning one or more agency station codes."""
    name: str
    codes: List[str]
    line_codes: List[str] = field(default_factory=list)

    @property
    def code(self) -> str:
        """Comma-separated codes, as accepted by the prediction API."""
        return ",".join(self.codes)
