"""Datetime helpers shared across the application."""

from __future__ import annotations

from datetime import UTC, datetime

__all__ = [
    "serialize_datetime",
    "display_datetime",
    "ensure_utc",
    "utcnow",
]


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` converted to UTC when timezone-aware."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC)


def serialize_datetime(value: datetime | None) -> str | None:
    """Serialise ``value`` to ISO 8601, normalising timezone-aware values to UTC."""
    if value is None:
        return None
    return (ensure_utc(value) or value).isoformat()


def display_datetime(value: datetime | None) -> str | None:
    """Return a user-friendly representation of ``value`` for terminal output."""
    if value is None:
        return None
    display = ensure_utc(value) or value
    return display.astimezone().strftime("%b %d, %Y %I:%M %p")
