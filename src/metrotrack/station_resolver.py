"""Station identifier resolution and station grouping.

WMATA's live API identifies stations by codes such as "A01", and a transfer
complex such as Metro Center has one code per level ("A01,C01"). The GTFS
feed keys the same places as "STN_A01" or, for some complexes, a compound
"STN_A01_C01" whose code order is not predictable. Matching the two is a
heuristic; everything that depends on it goes through resolve_stop_times()
so a better mapping can replace it in one place.
"""

from itertools import permutations
from typing import Dict, Iterable, List

from .models import LookupTables, Station, StationGroup, StopTime

GTFS_STATION_PREFIX = "STN_"
CODE_SEPARATOR = ","
COMPOUND_JOINER = "_"


def split_station_codes(station: str) -> List[str]:
    """Split a comma-separated station identifier into its codes."""
    return [code.strip() for code in (station or "").split(CODE_SEPARATOR) if code.strip()]


def candidate_station_ids(station: str) -> List[str]:
    """
    List GTFS ids that may hold stop times for a station identifier.

    Order: the identifier as given, then each code (raw and prefixed), then
    every ordered join of two or more codes. With three or more codes the
    joins cover every permutation of every length.
    """
    codes = split_station_codes(station)
    candidates = [station.strip()] if station and station.strip() else []

    for code in codes:
        candidates.append(code)
        if not code.startswith(GTFS_STATION_PREFIX):
            candidates.append(f"{GTFS_STATION_PREFIX}{code}")

    if len(codes) > 1:
        bare = [code[len(GTFS_STATION_PREFIX):] if code.startswith(GTFS_STATION_PREFIX) else code for code in codes]
        for length in range(2, len(bare) + 1):
            for combo in permutations(bare, length):
                candidates.append(GTFS_STATION_PREFIX + COMPOUND_JOINER.join(combo))

    return list(dict.fromkeys(candidates))


def resolve_stop_times(tables: LookupTables, station: str) -> List[StopTime]:
    """Collect the stop-time entries for every GTFS id a station may be keyed under."""
    stop_times: List[StopTime] = []
    seen_buckets = set()

    for candidate in candidate_station_ids(station):
        bucket_ids = [candidate] + tables.station_stops.get(candidate, [])
        for bucket_id in bucket_ids:
            if bucket_id in seen_buckets:
                continue
            seen_buckets.add(bucket_id)
            stop_times.extend(tables.stop_times_by_station.get(bucket_id, []))

    return stop_times


def group_stations_by_name(stations: Iterable[Station]) -> List[StationGroup]:
    """Combine stations sharing a name (multi-level transfer stations) into one group."""
    grouped: Dict[str, StationGroup] = {}

    for station in stations:
        group = grouped.get(station.name)
        if group is None:
            group = grouped[station.name] = StationGroup(name=station.name, codes=[])
        if station.code not in group.codes:
            group.codes.append(station.code)
        for line in station.line_codes:
            if line and line not in group.line_codes:
                group.line_codes.append(line)

    return list(grouped.values())
