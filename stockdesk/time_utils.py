from datetime import datetime, timezone


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def epoch_millis(dt: datetime | None = None) -> int:
    """Milliseconds since the epoch for a UTC-naive datetime (defaults to now)."""
    dt = dt or utcnow()
    return int(dt.replace(tzinfo=timezone.utc).timestamp() * 1000)
