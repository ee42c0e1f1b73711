"""MetroTrack - WMATA Metrorail arrivals from live predictions and the GTFS schedule."""

__version__ = "0.1.0"

from .models import LiveArrival, LookupTables, ScheduledArrival, Station, StationGroup
from .config import TrackerConfig
from .errors import FeedError, FeedUnavailable, MalformedFeed, MissingFeedData, PredictionsUnavailable
from .gtfs_loader import GTFSLoader, build_lookup_tables
from .merge import merge_arrivals
from .schedule import get_scheduled_arrivals
from .schedule_cache import ScheduleCache
from .station_tracker import StationTracker
from .polling import StationMonitor
from .wmata_client import WMATAClient

__all__ = [
    "StationTracker",
    "StationMonitor",
    "ScheduleCache",
    "GTFSLoader",
    "WMATAClient",
    "TrackerConfig",
    "build_lookup_tables",
    "get_scheduled_arrivals",
    "merge_arrivals",
    "LookupTables",
    "ScheduledArrival",
    "LiveArrival",
    "Station",
    "StationGroup",
    "FeedError",
    "FeedUnavailable",
    "MalformedFeed",
    "MissingFeedData",
    "PredictionsUnavailable",
]
