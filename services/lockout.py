"""Brute-force lockout decisions. Pure functions over (count, lock time, now)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from config import SecuritySettings
from shared.datetime_utils import as_utc

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_LOCK_DURATION = timedelta(minutes=30)


@dataclass(frozen=True)
class LockoutPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    lock_duration: timedelta = DEFAULT_LOCK_DURATION

    @classmethod
    def from_settings(cls, settings: SecuritySettings) -> "LockoutPolicy":
        return cls(
            max_attempts=settings.max_failed_login_attempts,
            lock_duration=timedelta(minutes=settings.lock_duration_minutes),
        )

    def is_locked(self, locked_at: Optional[datetime], now: datetime) -> bool:
        # Lock state is derived from the lock's age only, never from the
        # live failed-attempt counter.
        if locked_at is None:
            return False
        return now < as_utc(locked_at) + self.lock_duration

    def should_lock(self, failed_attempts: int) -> bool:
        return failed_attempts >= self.max_attempts

    def unlocks_at(self, locked_at: Optional[datetime]) -> Optional[datetime]:
        if locked_at is None:
            return None
        return as_utc(locked_at) + self.lock_duration
