"""
Timezone utilities for the feed scorer.
Every timestamp the scorer compares or persists goes through here as aware UTC.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise to aware UTC.
    Naive values (SQLite drops tzinfo on read) are taken to be UTC already;
    aware values in another zone are converted.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def hours_between(later: datetime, earlier: datetime) -> float:
    """
    Hours elapsed from `earlier` to `later`, clamped at zero.
    A timestamp in the future relative to `later` counts as zero elapsed time.
    """
    diff = ensure_utc(later) - ensure_utc(earlier)
    return max(0.0, diff.total_seconds() / 3600.0)

