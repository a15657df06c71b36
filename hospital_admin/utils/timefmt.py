"""Helpers for the date and time strings stored on records.

Records keep dates as ``YYYY-MM-DD`` strings, times of day as ``HH:MM`` and
audit stamps (``dateCreation``/``dateModification``) as ISO 8601 UTC with
millisecond precision and a trailing ``Z``.
"""
from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any, Optional


def utcnow_iso() -> str:
    """Return the current UTC timestamp, e.g. ``2025-03-01T09:30:00.125Z``."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def today_iso(now: Optional[datetime] = None) -> str:
    """Return the UTC calendar date of ``now`` (default: the current time) as ``YYYY-MM-DD``.

    Aware datetimes are converted to UTC first; naive ones are taken as is.
    """
    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is not None:
        reference = reference.astimezone(timezone.utc)
    return reference.date().isoformat()


def parse_date(value: Any) -> Optional[date]:
    """Best-effort conversion of ``value`` to a :class:`date`."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text.split("T")[0])
    except ValueError:
        return None


def parse_time(value: Any) -> Optional[time]:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) time of day."""

    if value is None:
        return None
    if isinstance(value, time):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return time.fromisoformat(text)
    except ValueError:
        return None


def time_to_minutes(value: Any) -> Optional[int]:
    """Return minutes since midnight for an ``HH:MM`` string, or ``None``."""

    parsed = parse_time(value)
    if parsed is None:
        return None
    return parsed.hour * 60 + parsed.minute


def combine(day: Any, hour: Any = None) -> Optional[datetime]:
    """Combine a date and an optional time of day into a naive local datetime.

    A missing or blank ``hour`` means midnight.
    """

    parsed_day = parse_date(day)
    if parsed_day is None:
        return None
    parsed_time = parse_time(hour) if hour else time(0, 0)
    if parsed_time is None:
        return None
    return datetime.combine(parsed_day, parsed_time)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval overlap: ``[a0, a1)`` intersects ``[b0, b1)``."""
    return start_a < end_b and start_b < end_a


__all__ = [
    "utcnow_iso",
    "today_iso",
    "parse_date",
    "parse_time",
    "time_to_minutes",
    "combine",
    "intervals_overlap",
]
