"""UTC helpers. Every datetime stored or compared in taskflow is UTC-aware."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Attach UTC to naive values and convert aware ones; None passes through."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Read a stored timestamp (ISO-8601 string, trailing 'Z' allowed, or datetime) as UTC.

    Firestore REST hands back strings, the in-memory store keeps datetimes.
    """
    if value is None or isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
