"""Timestamp helpers shared by the generator, the channel and the CLI."""

from __future__ import annotations

from datetime import UTC, datetime

NOT_AVAILABLE = "N/A"
INVALID_DATE = "Invalid Date"


def iso_now() -> str:
    """Return the current UTC time as ISO-8601 with milliseconds and a ``Z`` suffix.

    Matches the format browsers produce with ``Date.toISOString()``, which is
    what the backend expects inside signed join payloads.
    """
    return to_iso(datetime.now(UTC))


def to_iso(value: datetime) -> str:
    """Format *value* as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` (naive values are treated as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 string or epoch-milliseconds string.

    Returns ``None`` when *value* is empty or cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    trimmed = value.strip()
    if not trimmed:
        return None
    try:
        return datetime.fromisoformat(trimmed.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        millis = float(trimmed)
    except ValueError:
        return None
    if millis <= 0:
        return None
    try:
        return datetime.fromtimestamp(millis / 1000.0, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def _format(value: str | datetime | None, pattern: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return NOT_AVAILABLE
    parsed = parse_datetime(value)
    if parsed is None:
        return INVALID_DATE
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime(pattern)


def format_date(value: str | datetime | None) -> str:
    """Local date and time, e.g. ``2025-01-31 14:05:09``."""
    return _format(value, "%Y-%m-%d %H:%M:%S")


def format_date_short(value: str | datetime | None) -> str:
    """Local date only."""
    return _format(value, "%Y-%m-%d")


def format_time(value: str | datetime | None) -> str:
    """Local time of day only."""
    return _format(value, "%H:%M:%S")
