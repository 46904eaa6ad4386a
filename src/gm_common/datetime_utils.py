"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def from_unix(ts: int) -> datetime:
    """Convert a chain timestamp (unix seconds) to an aware UTC datetime."""
    return datetime.fromtimestamp(ts, tz=timezone.utc)
