"""Utility helpers for Spark!Bytes."""

from __future__ import annotations

import math
import re
from datetime import UTC, datetime, tzinfo

from .catalog import CAMPUS_CENTER

_point_delimiters = re.compile(r"[()\s]")


def utcnow() -> datetime:
    """Return a naive UTC datetime."""

    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Normalize aware datetimes to naive UTC; naive values are assumed UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def parse_coordinates(
    raw: str | None, *, default: tuple[float, float] = CAMPUS_CENTER
) -> tuple[float, float]:
    """Parse a ``"(lng, lat)"`` point string into a numeric pair.

    Absent or malformed input yields ``default`` instead of raising; the store
    is not guaranteed to hold a usable point for every event.
    """
    if not raw or not isinstance(raw, str):
        return default
    parts = _point_delimiters.sub("", raw).split(",")
    if len(parts) != 2:
        return default
    try:
        lng, lat = (float(part) for part in parts)
    except ValueError:
        return default
    if not (math.isfinite(lng) and math.isfinite(lat)):
        return default
    return (lng, lat)


def format_coordinates(coords: tuple[float, float]) -> str:
    """Serialize a ``(lng, lat)`` pair into the store's point format."""
    lng, lat = coords
    return f"({lng}, {lat})"


def _localize(value: datetime, tz: tzinfo | None) -> datetime:
    if tz is None:
        return value
    aware = value if value.tzinfo else value.replace(tzinfo=UTC)
    return aware.astimezone(tz)


def format_time(value: datetime, *, tz: tzinfo | None = None) -> str:
    """Return a short clock time such as ``3:05 PM``."""
    local = _localize(value, tz)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def format_time_range(
    start: datetime | None, end: datetime | None, *, tz: tzinfo | None = None
) -> str:
    if not start:
        return ""
    if not end:
        return format_time(start, tz=tz)
    return f"{format_time(start, tz=tz)} - {format_time(end, tz=tz)}"


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def email_in_domain(email: str | None, domain: str) -> bool:
    normalized = normalize_email(email)
    suffix = f"@{domain.strip().lstrip('@').lower()}"
    return normalized.endswith(suffix) and len(normalized) > len(suffix)


def attendee_label(count: int) -> str:
    noun = "person" if count == 1 else "people"
    return f"{count} {noun} attending"
