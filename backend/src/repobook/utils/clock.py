"""UTC datetime helpers shared by the credit ledger, rate limits and errors."""

import math
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def hours_until_reset(
    reset_at: Optional[datetime], now: Optional[datetime] = None
) -> Optional[int]:
    """Whole hours until `reset_at`, rounded up; None when no timer runs."""
    reset_at = as_utc(reset_at)
    if reset_at is None:
        return None
    seconds = max(0.0, (reset_at - (now or utcnow())).total_seconds())
    return math.ceil(seconds / 3600)
