"""
Date/time helpers: framework-agnostic.

MongoDB may hand back naive datetimes depending on client options; every
comparison in the auth core goes through ``ensure_utc`` first.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime. Naive values are assumed UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def minutes_until(deadline: datetime, now: datetime) -> int:
    """Whole minutes remaining until *deadline*, rounded up (never negative)."""
    seconds = (ensure_utc(deadline) - ensure_utc(now)).total_seconds()
    return max(0, math.ceil(seconds / 60))
