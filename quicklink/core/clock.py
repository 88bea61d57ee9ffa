"""Time helpers.

All persisted timestamps are naive UTC. Dashboard windows ("today",
"this month") start at local wall-clock boundaries and are converted back to
naive UTC for querying.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _local(now: datetime | None) -> datetime:
    return (now or utcnow()).replace(tzinfo=timezone.utc).astimezone()


def _as_naive_utc(local_value: datetime) -> datetime:
    return local_value.astimezone(timezone.utc).replace(tzinfo=None)


def local_midnight_utc(now: datetime | None = None) -> datetime:
    """Start of the current local calendar day as naive UTC."""
    local_now = _local(now)
    return _as_naive_utc(local_now.replace(hour=0, minute=0, second=0, microsecond=0))


def local_month_start_utc(now: datetime | None = None, months_back: int = 0) -> datetime:
    """Start of the local calendar month, optionally shifted back, as naive UTC."""
    local_now = _local(now)
    month_index = local_now.year * 12 + (local_now.month - 1) - months_back
    year, month = divmod(month_index, 12)
    start = local_now.replace(
        year=year, month=month + 1, day=1, hour=0, minute=0, second=0, microsecond=0
    )
    return _as_naive_utc(start)
