"""Naive-UTC timestamps, matching the DateTime columns."""

import math
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, halves rounded up."""
    seconds = (end - start).total_seconds()
    return math.floor(seconds / 60 + 0.5)
