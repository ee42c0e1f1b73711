"""Small WMATA-style GTFS feed used across the tests.

Service dates: 2026-10-14 is a Wednesday, 2026-10-12 a Monday on which
WEEKDAY service is replaced by HOLIDAY service.
"""

import io
import struct
import sys
import zipfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from metrotrack.gtfs_loader import GTFSLoader

STOPS = """stop_id,stop_name,location_type,parent_station
STN_C05,Rosslyn,1,
PF_C05_1,Rosslyn Platform 1,0,STN_C05
PF_C05_2,Rosslyn Platform 2,0,STN_C05
STN_A01_C01,Metro Center,1,
PF_A01_1,Metro Center Upper Level,0,STN_A01_C01
PF_C01_1,Metro Center Lower Level,0,STN_A01_C01
STN_J03,Franconia-Springfield,1,
"""

ROUTES = """route_id,agency_id,route_short_name,route_long_name,route_type
BLUE,WMATA,,,1
ORANGE,WMATA,,,1
R_SV,WMATA,SILVER,Silver Line,1
SHUTTLE,WMATA,,Bus Bridge,3
"""

TRIPS = """route_id,service_id,trip_id,trip_headsign,direction_id
BLUE,WEEKDAY,T1,FRANCONIA-SPRINGFIELD,0
BLUE,WEEKDAY,T2,DOWNTOWN LARGO,1
ORANGE,WEEKDAY,T3,VIENNA,0
R_SV,HOLIDAY,T4,ASHBURN,1
SHUTTLE,WEEKDAY,T5,ROSSLYN,0
BLUE,LATE,T6,FRANCONIA-SPRINGFIELD,0
"""

STOP_TIMES = """trip_id,arrival_time,departure_time,stop_id,stop_sequence
T1,08:10:00,08:10:30,PF_C05_1,5
T1,08:15:00,08:15:00,PF_A01_1,6
T1,08:40:00,08:40:30,STN_J03,20
T2,08:25:00,08:25:30,PF_C05_2,7
T3,08:20:00,08:20:00,PF_C01_1,4
T3,08:21:00,08:21:00,PF_A01_1,5
T3,08:55:00,08:55:30,PF_C05_1,9
T4,09:20:00,09:20:00,PF_C05_2,3
T5,08:30:00,08:30:00,PF_C05_1,1
T6,25:10:00,25:10:00,PF_C05_1,4
"""

CALENDAR = """service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday,start_date,end_date
WEEKDAY,1,1,1,1,1,0,0,20260101,20261231
LATE,1,1,1,1,1,1,1,20260101,20261231
"""

CALENDAR_DATES = """service_id,date,exception_type
WEEKDAY,20261012,2
HOLIDAY,20261012,1
"""

FEED_TABLES = {
    "stops.txt": STOPS,
    "routes.txt": ROUTES,
    "trips.txt": TRIPS,
    "stop_times.txt": STOP_TIMES,
    "calendar.txt": CALENDAR,
    "calendar_dates.txt": CALENDAR_DATES,
}


def make_feed_zip(overrides=None, omit=(), folder="") -> bytes:
    """Zip the sample feed, replacing or leaving out tables."""
    tables = dict(FEED_TABLES)
    tables.update(overrides or {})
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zip_file:
        for name, content in tables.items():
            if name in omit:
                continue
            zip_file.writestr(folder + name, content)
    return buffer.getvalue()


def build_tables(overrides=None, omit=()):
    """Parse and index the sample feed."""
    return GTFSLoader().load_from_bytes(make_feed_zip(overrides, omit))


def corrupt_member(archive: bytes, name: str) -> bytes:
    """Flip bytes at the start of one member's compressed data."""
    with zipfile.ZipFile(io.BytesIO(archive)) as zip_file:
        info = zip_file.getinfo(name)
    data = bytearray(archive)
    # Local file header: 30 fixed bytes, then the name and extra field
    name_length, extra_length = struct.unpack("<HH", data[info.header_offset + 26:info.header_offset + 30])
    start = info.header_offset + 30 + name_length + extra_length
    for offset in range(start, start + 8):
        data[offset] ^= 0xFF
    return bytes(data)
