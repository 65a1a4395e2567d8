"""Day-key helpers.

A day key is the ISO ``YYYY-MM-DD`` date of a timestamp in UTC. Naive
datetimes are read as UTC. Callers that build ``day`` values in a local
timezone will bucket late-evening meals into the following UTC day.
"""

from datetime import UTC, date, datetime, timedelta


def day_key(value: date | datetime) -> str:
    """Return the UTC calendar date of a timestamp as ``YYYY-MM-DD``."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).date().isoformat()
    return value.isoformat()


def parse_day_key(key: str) -> date:
    """Parse a day key back into a date."""
    return date.fromisoformat(key)


def day_bounds(key: str) -> tuple[datetime, datetime]:
    """Return the half-open UTC range ``[start, end)`` covered by a day key."""
    day = parse_day_key(key)
    start = datetime(day.year, day.month, day.day, tzinfo=UTC)
    return start, start + timedelta(days=1)


def shift_day(key: str, days: int) -> str:
    """Return the key ``days`` calendar days away from ``key``."""
    return (parse_day_key(key) + timedelta(days=days)).isoformat()
