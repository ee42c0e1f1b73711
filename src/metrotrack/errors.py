"""Exception hierarchy for MetroTrack."""

from typing import Optional


class MetroTrackError(Exception):
    """Base class for all MetroTrack errors."""


class FeedError(MetroTrackError):
    """A schedule rebuild failed. Any previously cached schedule is kept."""


class FeedUnavailable(FeedError):
    """The GTFS archive could not be downloaded."""


class MalformedFeed(FeedError):
    """The GTFS archive is unusable (bad zip, unparseable mandatory table)."""


class MissingFeedData(MalformedFeed):
    """A mandatory GTFS table or column is missing from the archive."""

    def __init__(self, table: str, detail: str = ""):
        self.table = table
        message = f"Missing required GTFS data: {table}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class RowParseError(MetroTrackError):
    """A single GTFS row could not be decoded; the row is skipped."""

    def __init__(self, table: str, row_number: Optional[int], reason: str):
        self.table = table
        self.row_number = row_number  # None when the CSV reader dropped the row itself
        self.reason = reason
        location = f"{table} row {row_number}" if row_number is not None else table
        super().__init__(f"{location}: {reason}")


class PredictionsUnavailable(MetroTrackError):
    """The live prediction API could not be reached or returned an error."""
