"""
Calendar date helpers

Dates travel as zero-padded ISO strings (YYYY-MM-DD), so plain string comparison
orders them chronologically.
"""
from datetime import date, datetime, timedelta
from typing import Iterator
from zoneinfo import ZoneInfo


def now_in(tz_name: str) -> datetime:
    return datetime.now(ZoneInfo(tz_name))


def today_iso(tz_name: str) -> str:
    """Today's calendar date in the given timezone"""
    return now_in(tz_name).date().isoformat()


def to_iso(value: date | datetime | str) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(value).isoformat()


def window_start(today: str, days: int) -> str:
    """First date of the trailing window that ends at `today`"""
    return (date.fromisoformat(today) - timedelta(days=days)).isoformat()


def in_range(value: str, start: str, end: str) -> bool:
    """Inclusive [start, end] check"""
    return start <= value <= end


def normalize_range(start: str, end: str) -> tuple[str, str]:
    """Swap reversed bounds so that start <= end"""
    if start > end:
        return end, start
    return start, end


def iter_days(start: str, end: str) -> Iterator[str]:
    """Every calendar day in [start, end]"""
    current = date.fromisoformat(start)
    last = date.fromisoformat(end)
    while current <= last:
        yield current.isoformat()
        current += timedelta(days=1)
