"""Timestamp helpers shared by the pipeline stages."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_epoch_us(value: datetime) -> int:
    """Integer microseconds since the Unix epoch.

    Integer arithmetic keeps comparisons exact, which float seconds would not
    for timestamps far from the epoch.
    """
    return (ensure_utc(value) - EPOCH) // _MICROSECOND


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 string or pass through a datetime.

    :param value: Candidate timestamp.
    :returns: Timezone-aware datetime, or None if the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(parsed)


__all__ = ["EPOCH", "ensure_utc", "to_epoch_us", "parse_timestamp"]
