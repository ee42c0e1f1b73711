"""GTFS static archive parser."""

import io
import logging
import re
import zipfile
import zlib
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .errors import MalformedFeed, MissingFeedData, RowParseError
from .models import (
    CalendarException,
    ExceptionType,
    ParsedFeed,
    Route,
    ServiceCalendar,
    Stop,
    StopTime,
    Trip,
)

logger = logging.getLogger(__name__)

# table -> columns that must be present in the header
REQUIRED_TABLES = {
    "stops.txt": ("stop_id",),
    "stop_times.txt": ("trip_id", "stop_id", "arrival_time", "departure_time", "stop_sequence"),
    "trips.txt": ("trip_id", "route_id", "service_id"),
}
OPTIONAL_TABLES = {
    "routes.txt": ("route_id",),
    "calendar.txt": ("service_id", "start_date", "end_date"),
    "calendar_dates.txt": ("service_id", "date", "exception_type"),
}

WEEKDAY_COLUMNS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_TIME_RE = re.compile(r"^\d{1,3}:\d{2}:\d{2}$")
_DATE_RE = re.compile(r"^\d{8}$")

Row = Dict[str, str]


def parse_time_to_minutes(value: Optional[str]) -> Optional[float]:
    """Convert an H:MM:SS clock value to minutes since midnight (may exceed 1440)."""
    if not value:
        return None
    value = value.strip()
    if not _TIME_RE.match(value):
        return None
    hours, minutes, seconds = (int(part) for part in value.split(":"))
    return hours * 60 + minutes + seconds / 60


class RowDecoder:
    """
    Decodes the rows of one table, skipping any row that fails.

    Each skipped row is recorded so callers can report how many rows a
    table lost instead of silently absorbing bad data.
    """

    def __init__(self, table: str, decode: Callable[[Row], Any]):
        self.table = table
        self._decode = decode
        self.errors: List[RowParseError] = []

    def decode_rows(self, rows: Iterable[Row]) -> List[Any]:
        records = []
        # Row 1 is the header
        for row_number, row in enumerate(rows, start=2):
            try:
                records.append(self._decode(row))
            except RowParseError as e:
                self.errors.append(RowParseError(self.table, row_number, e.reason))
            except (KeyError, ValueError, TypeError) as e:
                self.errors.append(RowParseError(self.table, row_number, str(e)))

        if self.errors:
            logger.warning(
                f"Skipped {len(self.errors)} malformed rows in {self.table} "
                f"(first: {self.errors[0]})"
            )
        return records


def _field(row: Row, name: str) -> str:
    value = row.get(name)
    # Short rows come back from pandas padded with NaN
    if not isinstance(value, str):
        return ""
    return value.strip()


def _required(row: Row, name: str) -> str:
    value = _field(row, name)
    if not value:
        raise RowParseError("", 0, f"empty {name}")
    return value


def _date(row: Row, name: str) -> str:
    value = _required(row, name)
    if not _DATE_RE.match(value):
        raise RowParseError("", 0, f"invalid {name} {value!r}")
    return value


def decode_stop(row: Row) -> Stop:
    return Stop(stop_id=_required(row, "stop_id"), parent_station=_field(row, "parent_station") or None)


def decode_stop_time(row: Row) -> StopTime:
    arrival = _field(row, "arrival_time")
    departure = _field(row, "departure_time")
    # Non-timepoint rows may carry only one of the two times
    arrival = arrival or departure
    departure = departure or arrival
    if parse_time_to_minutes(arrival) is None:
        raise RowParseError("", 0, f"invalid arrival_time {arrival!r}")
    return StopTime(
        trip_id=_required(row, "trip_id"),
        stop_id=_required(row, "stop_id"),
        arrival_time=arrival,
        departure_time=departure,
        stop_sequence=int(_required(row, "stop_sequence")),
    )


def decode_trip(row: Row) -> Trip:
    direction = _field(row, "direction_id")
    return Trip(
        trip_id=_required(row, "trip_id"),
        route_id=_required(row, "route_id"),
        service_id=_required(row, "service_id"),
        direction_id=int(direction) if direction else None,
        headsign=_field(row, "trip_headsign"),
    )


def decode_route(row: Row) -> Route:
    return Route(
        route_id=_required(row, "route_id"),
        short_name=_field(row, "route_short_name"),
        long_name=_field(row, "route_long_name"),
    )


def decode_calendar(row: Row) -> ServiceCalendar:
    weekdays = []
    for index, day in enumerate(WEEKDAY_COLUMNS):
        flag = _field(row, day) or "0"
        if flag not in ("0", "1"):
            raise RowParseError("", 0, f"invalid {day} flag {flag!r}")
        if flag == "1":
            weekdays.append(index)
    return ServiceCalendar(
        service_id=_required(row, "service_id"),
        weekdays=weekdays,
        start_date=_date(row, "start_date"),
        end_date=_date(row, "end_date"),
    )


def decode_calendar_date(row: Row) -> CalendarException:
    return CalendarException(
        service_id=_required(row, "service_id"),
        date=_date(row, "date"),
        exception_type=ExceptionType(int(_required(row, "exception_type"))),
    )


def _read_csv(content: bytes, **options) -> pd.DataFrame:
    # The header is read as row 0 so it alone sets the expected field count
    return pd.read_csv(
        io.BytesIO(content),
        header=None,
        dtype=str,
        keep_default_na=False,
        encoding="utf-8-sig",
        skipinitialspace=True,
        **options,
    )


def read_table(
    content: bytes,
    table: str,
    columns: Sequence[str],
    errors: Optional[List[RowParseError]] = None,
) -> List[Row]:
    """
    Read one CSV table into a list of row dicts keyed by header name.

    Args:
        content: Raw table bytes.
        table: Table file name, used in error messages.
        columns: Columns the header must contain.
        errors: Receives a RowParseError for each row skipped because it has
            more fields than the header.

    Raises:
        MissingFeedData: If a required column is absent.
        MalformedFeed: If the table is empty or not parseable as CSV.
    """
    skipped: List[List[str]] = []

    def skip_bad_line(fields: List[str]) -> None:
        skipped.append(fields)
        return None

    try:
        try:
            frame = _read_csv(content)
        except pd.errors.ParserError:
            # Rows with extra fields; re-read with the python engine and skip them
            frame = _read_csv(content, engine="python", on_bad_lines=skip_bad_line)
    except pd.errors.EmptyDataError:
        raise MalformedFeed(f"{table} is empty")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise MalformedFeed(f"{table} could not be parsed: {e}") from e

    header = [str(column).strip() for column in frame.iloc[0]]
    frame = frame.iloc[1:]
    frame.columns = header

    missing = [column for column in columns if column not in header]
    if missing:
        raise MissingFeedData(table, f"columns {', '.join(missing)}")

    if errors is not None:
        for fields in skipped:
            errors.append(
                RowParseError(table, None, f"expected {len(header)} fields, got {len(fields)}")
            )
    return frame.to_dict("records")


def _read_optional(
    archive: Dict[str, bytes], table: str, errors: List[RowParseError]
) -> Optional[List[Row]]:
    if table not in archive:
        return None
    try:
        return read_table(archive[table], table, OPTIONAL_TABLES[table], errors)
    except MalformedFeed as e:
        logger.warning(f"Ignoring unreadable optional table: {e}")
        return None


def extract_tables(archive_bytes: bytes) -> Dict[str, bytes]:
    """Decompress the GTFS tables we use from a zip archive."""
    wanted = set(REQUIRED_TABLES) | set(OPTIONAL_TABLES)
    try:
        with zipfile.ZipFile(io.BytesIO(archive_bytes)) as zip_file:
            tables = {}
            for name in zip_file.namelist():
                # Some publishers nest the tables in a folder
                base = name.rsplit("/", 1)[-1]
                if base in wanted and base not in tables:
                    tables[base] = _read_member(zip_file, name)
            return tables
    except zipfile.BadZipFile as e:
        raise MalformedFeed(f"GTFS archive is not a valid zip file: {e}") from e


def _read_member(zip_file: zipfile.ZipFile, name: str) -> bytes:
    try:
        return zip_file.read(name)
    except (zlib.error, EOFError, NotImplementedError) as e:
        # Truncated or corrupted deflate data, or an unsupported compression method
        raise MalformedFeed(f"Could not decompress {name}: {e}") from e


def parse_tables(tables: Dict[str, bytes]) -> ParsedFeed:
    """Parse already-extracted table contents into typed records."""
    for table in REQUIRED_TABLES:
        if table not in tables:
            raise MissingFeedData(table)

    feed = ParsedFeed()
    decoders: List[Tuple[str, RowDecoder, List[Row]]] = []

    for table, columns in REQUIRED_TABLES.items():
        decoder = _decoder_for(table)
        rows = read_table(tables[table], table, columns, decoder.errors)
        decoders.append((table, decoder, rows))

    for table in OPTIONAL_TABLES:
        decoder = _decoder_for(table)
        rows = _read_optional(tables, table, decoder.errors)
        if rows is None:
            if table == "routes.txt":
                logger.warning("routes.txt missing; all routes will map to the unknown line")
            continue
        decoders.append((table, decoder, rows))

    for table, decoder, rows in decoders:
        records = decoder.decode_rows(rows)
        setattr(feed, _FEED_FIELDS[table], records)
        if decoder.errors:
            feed.parse_errors[table] = len(decoder.errors)

    logger.info(
        f"Parsed {len(feed.stops)} stops, {len(feed.stop_times)} stop times, "
        f"{len(feed.trips)} trips, {len(feed.routes)} routes"
    )
    return feed


def parse_feed(archive_bytes: bytes) -> ParsedFeed:
    """Parse a GTFS zip archive."""
    return parse_tables(extract_tables(archive_bytes))


_FEED_FIELDS = {
    "stops.txt": "stops",
    "stop_times.txt": "stop_times",
    "trips.txt": "trips",
    "routes.txt": "routes",
    "calendar.txt": "calendar",
    "calendar_dates.txt": "calendar_dates",
}

_DECODE_FUNCTIONS = {
    "stops.txt": decode_stop,
    "stop_times.txt": decode_stop_time,
    "trips.txt": decode_trip,
    "routes.txt": decode_route,
    "calendar.txt": decode_calendar,
    "calendar_dates.txt": decode_calendar_date,
}


def _decoder_for(table: str) -> RowDecoder:
    return RowDecoder(table, _DECODE_FUNCTIONS[table])
