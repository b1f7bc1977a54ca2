"""Unit tests for services.lockout.LockoutPolicy."""

from datetime import datetime, timedelta, timezone

import pytest

from config import SecuritySettings
from services.lockout import LockoutPolicy

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestIsLocked:
    def test_never_locked(self):
        assert LockoutPolicy().is_locked(None, NOW) is False

    @pytest.mark.parametrize(
        "age, locked",
        [
            (timedelta(0), True),
            (timedelta(minutes=29, seconds=59), True),
            (timedelta(minutes=30), False),
            (timedelta(hours=2), False),
        ],
        ids=["just_locked", "almost_expired", "exactly_expired", "long_ago"],
    )
    def test_lock_age(self, age, locked):
        assert LockoutPolicy().is_locked(NOW - age, NOW) is locked

    def test_naive_lock_time_is_treated_as_utc(self):
        naive = (NOW - timedelta(minutes=5)).replace(tzinfo=None)
        assert LockoutPolicy().is_locked(naive, NOW) is True


class TestShouldLock:
    @pytest.mark.parametrize(
        "attempts, expected",
        [(0, False), (4, False), (5, True), (9, True)],
    )
    def test_threshold(self, attempts, expected):
        assert LockoutPolicy().should_lock(attempts) is expected

    def test_custom_threshold(self):
        assert LockoutPolicy(max_attempts=3).should_lock(3) is True


class TestSettings:
    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("MAX_FAILED_LOGIN_ATTEMPTS", "3")
        monkeypatch.setenv("LOCK_DURATION_MINUTES", "10")
        policy = LockoutPolicy.from_settings(SecuritySettings())
        assert policy.max_attempts == 3
        assert policy.lock_duration == timedelta(minutes=10)

    def test_unlocks_at(self):
        assert LockoutPolicy().unlocks_at(NOW) == NOW + timedelta(minutes=30)
        assert LockoutPolicy().unlocks_at(None) is None
