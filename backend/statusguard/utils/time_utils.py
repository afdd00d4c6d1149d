"""Time helpers."""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how SQLite round-trips DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat_utc(value: datetime) -> str:
    """ISO 8601 with a trailing Z; naive values are taken to be UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return f"{value.isoformat()}Z"
