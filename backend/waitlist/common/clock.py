"""Timezone-aware time helpers."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(timezone.utc)
