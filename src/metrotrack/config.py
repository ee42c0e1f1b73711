"""Runtime configuration for MetroTrack."""

import os
from dataclasses import dataclass
from pathlib import Path

import pytz

WMATA_GTFS_URL = "https://api.wmata.com/gtfs/rail-gtfs-static.zip"
WMATA_API_BASE_URL = "https://api.wmata.com"


@dataclass
class TrackerConfig:
    """Centralized configuration"""

    # API settings
    api_key: str = ""
    gtfs_url: str = WMATA_GTFS_URL
    api_base_url: str = WMATA_API_BASE_URL
    request_timeout_seconds: int = 60
    predictions_cache_seconds: int = 30

    # Schedule cache
    cache_path: Path = Path("./cache/metrotrack.db")
    cache_ttl_seconds: int = 24 * 60 * 60

    # Polling
    live_refresh_seconds: float = 30.0
    schedule_refresh_seconds: float = 60.0
    default_window_minutes: int = 90

    # Arrival times in the feed are local to the agency
    timezone: str = "America/New_York"

    @classmethod
    def from_env(cls) -> "TrackerConfig":
        """Build a config from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            api_key=os.getenv("WMATA_API_KEY", defaults.api_key),
            gtfs_url=os.getenv("METROTRACK_GTFS_URL", defaults.gtfs_url),
            api_base_url=os.getenv("METROTRACK_API_BASE_URL", defaults.api_base_url),
            request_timeout_seconds=int(
                os.getenv("METROTRACK_REQUEST_TIMEOUT_SECONDS", defaults.request_timeout_seconds)
            ),
            cache_path=Path(os.getenv("METROTRACK_CACHE_PATH", str(defaults.cache_path))),
            cache_ttl_seconds=int(os.getenv("METROTRACK_CACHE_TTL_SECONDS", defaults.cache_ttl_seconds)),
            timezone=os.getenv("METROTRACK_TIMEZONE", defaults.timezone),
        )

    @property
    def tzinfo(self):
        return pytz.timezone(self.timezone)
