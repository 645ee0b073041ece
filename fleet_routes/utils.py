"""General utility helpers shared across modules."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone


def round_minutes(duration: timedelta) -> int:
    """Round a duration to whole minutes, halves away from zero."""

    minutes = duration.total_seconds() / 60.0
    return int(math.copysign(math.floor(abs(minutes) + 0.5), minutes))


def format_minutes(duration: timedelta) -> str:
    """Format a duration as ``N min`` at minute granularity."""

    return f"{round_minutes(duration)} min"


def to_utc_aware(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
