"""Merging of live predictions with scheduled arrivals."""

from typing import Dict, Iterable, List, Optional, Sequence, Union

from .destinations import destination_key
from .models import LiveArrival, ScheduledArrival

Arrival = Union[LiveArrival, ScheduledArrival]

# Live predictions are reliable roughly this far out
LIVE_WINDOW_MINUTES = 25
# A scheduled train within this many minutes of a live one is the same train
MATCH_TOLERANCE_MINUTES = 5


def merge_arrivals(
    live: Sequence[LiveArrival],
    scheduled: Sequence[ScheduledArrival],
) -> List[Arrival]:
    """
    Combine live and scheduled arrivals into one list sorted by minutes away.

    Once any live data exists, scheduled trains inside the live window are
    dropped outright, and later scheduled trains are dropped when a live
    train on the same line to the same destination is within a few minutes.
    Dropping a real train is preferred over showing the same train twice.
    """
    live_keys = set()
    for train in live:
        key = destination_key(train.destination)
        minutes = train.minutes_away
        for offset in range(-MATCH_TOLERANCE_MINUTES, MATCH_TOLERANCE_MINUTES + 1):
            live_keys.add((train.line, key, minutes + offset))

    kept = []
    for train in scheduled:
        minutes = train.minutes_away
        if live and minutes < LIVE_WINDOW_MINUTES:
            continue
        if (train.line, destination_key(train.destination), minutes) in live_keys:
            continue
        kept.append(train)

    combined: List[Arrival] = list(live) + kept
    combined.sort(key=lambda train: train.minutes_away)
    return combined


def filter_arrivals(
    arrivals: Iterable[Arrival],
    lines: Optional[Iterable[str]] = None,
    track: Optional[str] = None,
) -> List[Arrival]:
    """Keep arrivals on the selected lines (all when empty) and track group."""
    selected = set(lines or [])
    result = []
    for train in arrivals:
        if selected and train.line not in selected:
            continue
        if track and train.group != track:
            continue
        result.append(train)
    return result


def group_by_track(arrivals: Iterable[Arrival]) -> Dict[str, List[Arrival]]:
    """Split arrivals into track groups "1" and "2", keeping their order."""
    groups: Dict[str, List[Arrival]] = {"1": [], "2": []}
    for train in arrivals:
        groups.setdefault(train.group, []).append(train)
    return groups


def track_label(arrivals: Iterable[Arrival]) -> str:
    """Describe a track by the destinations served on it."""
    destinations = list(dict.fromkeys(train.destination for train in arrivals if train.destination))
    if not destinations:
        return "Unknown"
    if len(destinations) <= 2:
        return " / ".join(destinations)
    return " / ".join(destinations[:2]) + "..."
