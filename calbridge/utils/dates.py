"""Date helpers shared by the calendar request builder and service."""

import datetime
from typing import Optional

TimeValue = datetime.datetime


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def ensure_aware(value: datetime.datetime) -> datetime.datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


def is_future(value: TimeValue, now: Optional[datetime.datetime] = None) -> bool:
    """Return True when *value* is strictly later than *now*.

    Args:
        value: The timestamp to check.
        now: Reference time, defaults to the current UTC time.
    """
    reference = ensure_aware(now) if now is not None else utcnow()
    return ensure_aware(value) > reference


def to_iso_string(value: TimeValue) -> str:
    """Render *value* as a UTC ISO-8601 string with millisecond precision.

    ``2024-05-01T09:30:00.000Z`` is the shape Google Calendar echoes back for
    ``dateTime`` fields written without an explicit ``timeZone``.
    """
    as_utc = ensure_aware(value).astimezone(datetime.timezone.utc)
    return as_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_datetime(value: str) -> datetime.datetime:
    """Parse an RFC 3339 timestamp as returned by the Calendar API.

    Raises:
        ValueError: If *value* is not a valid timestamp.
    """
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.datetime.fromisoformat(text))
