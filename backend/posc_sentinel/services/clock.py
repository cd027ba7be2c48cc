"""Time helpers shared by the pure pipeline functions.

Every instant inside the pipeline is timezone-aware UTC.  Naive values
(e.g. read back from SQLite) are interpreted as UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def as_naive_utc(value: datetime) -> datetime:
    """Return *value* as a naive UTC datetime for storage columns."""
    return as_utc(value).replace(tzinfo=None)
