"""Service calendar resolution (calendar.txt + calendar_dates.txt)."""

from datetime import date

from .models import LookupTables


def date_key(on_date: date) -> str:
    """Format a date the way GTFS does (YYYYMMDD)."""
    return on_date.strftime("%Y%m%d")


def service_runs(tables: LookupTables, service_id: str, on_date: date) -> bool:
    """
    Check whether a service runs on a given date.

    Exceptions always win over the weekly pattern. A service with no
    calendar.txt entry only runs on dates it was explicitly added for
    (WMATA publishes its service through calendar_dates.txt alone).
    """
    day = date_key(on_date)
    exceptions = tables.calendar_exceptions.get(service_id)

    if exceptions is not None:
        if day in exceptions.removed:
            return False
        if day in exceptions.added:
            return True

    service = tables.service_calendar.get(service_id)
    if service is None:
        return False

    if day < service.start_date or day > service.end_date:
        return False

    return on_date.weekday() in service.weekdays
