"""
Date/time helpers: framework-agnostic.

MongoDB hands datetimes back naive (UTC by convention) unless the client is
created with ``tz_aware=True``; everything in the service compares aware UTC
values, so stored timestamps pass through :func:`as_utc` first.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Timezone-aware current time in UTC. Default clock for the services."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime.

    Naive datetimes are assumed to already be UTC. ``None`` passes through.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(expires_at: Optional[datetime], now: datetime) -> bool:
    """True when *now* is strictly past *expires_at*.

    A missing expiry counts as expired so a half-written token never
    validates.
    """
    expiry = as_utc(expires_at)
    if expiry is None:
        return True
    return now > expiry
