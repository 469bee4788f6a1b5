"""Timezone helpers."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (Cassandra returns naive UTC values)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
