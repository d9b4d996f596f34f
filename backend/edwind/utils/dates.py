"""Date formatting and project-timezone conversion helpers.

Event times are stored in UTC; projects carry an IANA timezone used for
display and for interpreting naive times entered by schedulers.
"""

from datetime import date, datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

TIMEZONE_OPTIONS = [
    ('UTC', 'UTC (Coordinated Universal Time)'),
    ('America/New_York', 'Eastern Time (New York)'),
    ('America/Toronto', 'Eastern Time (Toronto)'),
    ('America/Chicago', 'Central Time (Chicago)'),
    ('America/Denver', 'Mountain Time (Denver)'),
    ('America/Edmonton', 'Mountain Time (Edmonton)'),
    ('America/Los_Angeles', 'Pacific Time (Los Angeles)'),
    ('America/Vancouver', 'Pacific Time (Vancouver)'),
    ('Europe/London', 'Greenwich Mean Time (London)'),
    ('Europe/Paris', 'Central European Time (Paris)'),
    ('Europe/Berlin', 'Central European Time (Berlin)'),
    ('Asia/Tokyo', 'Japan Standard Time (Tokyo)'),
    ('Asia/Dubai', 'Gulf Standard Time (Dubai)'),
    ('Asia/Singapore', 'Singapore Time'),
    ('Australia/Sydney', 'Australian Eastern Time (Sydney)'),
]

DateLike = Union[str, date, datetime, None]


def is_valid_timezone(name: Optional[str]) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def parse_datetime(value: DateLike) -> Optional[datetime]:
    """Parse ISO strings (a trailing `Z` is accepted) into datetimes."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return datetime.fromisoformat(text)


def local_to_utc(value: DateLike, tz_name: str) -> Optional[datetime]:
    """Interpret a naive local time in `tz_name` and return aware UTC."""
    dt = parse_datetime(value)
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo(tz_name))
    return dt.astimezone(timezone.utc)


def utc_to_local(value: DateLike, tz_name: str) -> Optional[datetime]:
    """Convert a UTC time (naive values are treated as UTC) to `tz_name`."""
    dt = parse_datetime(value)
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(ZoneInfo(tz_name))


def format_in_timezone(value: DateLike, tz_name: str, fmt: str = '%Y-%m-%d %H:%M') -> str:
    local = utc_to_local(value, tz_name)
    return local.strftime(fmt) if local else ''


def format_date(value: DateLike, fmt: str = '%Y-%m-%d') -> str:
    """Format a date or datetime; empty input yields an empty string."""
    dt = parse_datetime(value)
    return dt.strftime(fmt) if dt else ''


def format_date_range(start: DateLike, end: DateLike) -> str:
    """Human range such as `Mar 3 - Mar 7, 2025` or `Dec 29, 2024 - Jan 2, 2025`."""
    s = parse_datetime(start)
    e = parse_datetime(end)
    if not s and not e:
        return ''
    if not e or (s and s.date() == e.date()):
        d = s or e
        return f"{d.strftime('%b')} {d.day}, {d.year}"
    if not s:
        return f"{e.strftime('%b')} {e.day}, {e.year}"
    if s.year == e.year:
        return f"{s.strftime('%b')} {s.day} - {e.strftime('%b')} {e.day}, {e.year}"
    return f"{s.strftime('%b')} {s.day}, {s.year} - {e.strftime('%b')} {e.day}, {e.year}"


def as_utc(value: DateLike) -> Optional[datetime]:
    """Return aware UTC; naive values (as read back from SQLite) are taken as UTC."""
    dt = parse_datetime(value)
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
