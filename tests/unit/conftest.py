"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests. Tests control config exclusively through monkeypatch.setenv()
or explicit constructor arguments.

Also provides the shared building blocks for service tests: a controllable
clock, a cheap argon2 hasher, an in-memory store and a notifier that records
instead of sending.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pytest

from config import JWTSettings
from repositories.memory import InMemoryAccountStore
from services.auth_service import AccountService
from services.lockout import LockoutPolicy
from services.notifications import NotificationKind
from services.token_service import TokenCodec
from shared.crypto import PasswordHasher
from shared.datetime_utils import utcnow

TEST_SECRET = "unit-test-signing-secret-0123456789abcdef"


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingNotifier:
    """Stands in for NotificationDispatcher; keeps every send() call."""

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.sent: List[Tuple[NotificationKind, str, Dict[str, Any]]] = []

    def send(self, kind, recipient_email, template_data=None) -> bool:
        self.sent.append((kind, recipient_email, dict(template_data or {})))
        return self.accept

    def kinds(self) -> List[NotificationKind]:
        return [kind for kind, _, _ in self.sent]

    def last_token(self, kind: NotificationKind) -> str:
        for sent_kind, _, data in reversed(self.sent):
            if sent_kind is kind:
                return data["token"]
        raise AssertionError(f"no {kind.value} notification was sent")


@pytest.fixture
def jwt_settings() -> JWTSettings:
    return JWTSettings(jwt_secret=TEST_SECRET)


@pytest.fixture
def codec(jwt_settings, clock) -> TokenCodec:
    return TokenCodec(jwt_settings, clock=clock)


@pytest.fixture
def fast_hasher() -> PasswordHasher:
    # Minimum argon2 cost so the suite stays quick
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(store, codec, notifier, fast_hasher, clock) -> AccountService:
    return AccountService(
        store=store,
        codec=codec,
        notifier=notifier,
        hasher=fast_hasher,
        lockout=LockoutPolicy(),
        clock=clock,
    )
