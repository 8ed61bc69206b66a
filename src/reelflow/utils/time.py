"""Timezone helpers.

Timestamps are stored as UTC. SQLite drops tzinfo on round-trip, so values read
back from the database go through ensure_utc before comparisons.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_iso(value: str | datetime | None) -> datetime | None:
    """Parse an ISO 8601 string (a trailing Z is accepted) into a UTC datetime."""
    if value is None or isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
