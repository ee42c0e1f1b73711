"""Destination name normalization.

The static feed and the live API spell terminals differently
("FRANCONIA-SPRINGFIELD" vs "Franconia"). Both functions here are pure so
they can be adjusted when the agency changes its naming.
"""

import re

# Terminal qualifiers dropped from GTFS headsigns
HEADSIGN_QUALIFIERS = (
    re.compile(r"-SPRINGFIELD", re.IGNORECASE),
    re.compile(r"-GMU", re.IGNORECASE),
    re.compile(r"FAIRFAX-", re.IGNORECASE),
    re.compile(r"DOWNTOWN ", re.IGNORECASE),
)

# Words ignored when comparing live and scheduled destinations
KEY_STOPWORDS = {"SPRINGFIELD", "FAIRFAX", "GMU", "DOWNTOWN", "NEW"}

_PUNCTUATION_RE = re.compile(r"[^\w\s]")


def normalize_headsign(headsign: str) -> str:
    """Turn a GTFS trip_headsign into the live API's short destination style."""
    destination = headsign or ""
    for qualifier in HEADSIGN_QUALIFIERS:
        destination = qualifier.sub("", destination)
    destination = destination.split("-")[0].strip()
    if not destination:
        return "Unknown"
    return destination.title()


def destination_key(destination: str) -> str:
    """Reduce a destination to one upper-case word for duplicate matching."""
    if not destination:
        return ""
    words = _PUNCTUATION_RE.sub(" ", destination.upper()).split()
    words = [word for word in words if word not in KEY_STOPWORDS]
    return words[0] if words else ""
