"""
Unit tests for the shared/ utility modules.

Covers:
- shared.validators      (normalize_email, validate_email, validate_password,
                          validate_name)
- shared.generators      (generate_secure_token)
- shared.datetime_utils  (as_utc, is_expired)
- shared.crypto          (PasswordHasher, hash_token)
- shared.logging         (redact_sensitive_fields)
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from shared.crypto import PasswordHasher, hash_token
from shared.datetime_utils import as_utc, is_expired
from shared.generators import generate_secure_token
from shared.logging import redact_sensitive_fields
from shared.validators import (
    NAME_MAX_LENGTH,
    normalize_email,
    validate_email,
    validate_name,
    validate_password,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# shared.validators
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Ada@Example.COM", "ada@example.com"),
        ("  ada@example.com \n", "ada@example.com"),
        ("", ""),
        (None, ""),
    ],
    ids=["mixed_case", "whitespace", "empty", "none"],
)
def test_normalize_email(raw, expected):
    assert normalize_email(raw) == expected


@pytest.mark.parametrize(
    "email, expected",
    [
        ("ada@example.com", True),
        ("first.last+tag@sub.example.org", True),
        ("no-at-sign", False),
        ("ada@", False),
        ("@example.com", False),
        ("", False),
    ],
)
def test_validate_email(email, expected):
    assert validate_email(email) is expected


@pytest.mark.parametrize(
    "password, valid",
    [
        ("Secret123!", True),
        ("Secret 123!", True),  # spaces are allowed
        ("short1!", False),  # too short
        ("alllowercase1!", False),  # no uppercase
        ("ALLUPPERCASE1!", False),  # no lowercase
        ("NoNumbers!!", False),  # no digit
        ("NoSpecial123", False),  # no special char
        ("A1!" + "a" * 126, False),  # too long
        ("", False),
    ],
)
def test_validate_password(password, valid):
    is_valid, missing = validate_password(password)
    assert is_valid is valid
    assert (missing == []) is valid


def test_validate_password_reports_each_missing_requirement():
    _, missing = validate_password("abcdefgh")
    assert "At least one uppercase letter" in missing
    assert "At least one number" in missing
    assert "At least one special character" in missing
    assert "At least one lowercase letter" not in missing


def test_validate_password_empty_is_required():
    assert validate_password("") == (False, ["Password is required"])


def test_validate_password_rejects_non_ascii():
    _, missing = validate_password("Secret123!é")
    assert missing == ["Contains invalid characters"]


@pytest.mark.parametrize(
    "name, expected",
    [("Ada", True), ("x" * NAME_MAX_LENGTH, True), ("", False), ("x" * 101, False)],
    ids=["normal", "max_length", "empty", "too_long"],
)
def test_validate_name(name, expected):
    assert validate_name(name) is expected


# ---------------------------------------------------------------------------
# shared.generators
# ---------------------------------------------------------------------------


class TestGenerateSecureToken:
    def test_url_safe_characters(self):
        token = generate_secure_token()
        assert all(c.isalnum() or c in "-_" for c in token)

    def test_default_entropy(self):
        # 32 bytes base64url-encoded without padding
        assert len(generate_secure_token()) == 43

    def test_produces_variety(self):
        assert len({generate_secure_token() for _ in range(50)}) == 50


# ---------------------------------------------------------------------------
# shared.datetime_utils
# ---------------------------------------------------------------------------


class TestAsUtc:
    def test_naive_assumed_utc(self):
        assert as_utc(datetime(2025, 3, 1, 12, 0)) == NOW

    def test_other_zone_converted(self):
        plus_two = timezone(timedelta(hours=2))
        assert as_utc(datetime(2025, 3, 1, 14, 0, tzinfo=plus_two)) == NOW
        assert as_utc(datetime(2025, 3, 1, 14, 0, tzinfo=plus_two)).tzinfo == timezone.utc

    def test_none_passes_through(self):
        assert as_utc(None) is None


@pytest.mark.parametrize(
    "expires_at, expected",
    [
        (NOW + timedelta(seconds=1), False),
        (NOW, False),  # strictly after expiry only
        (NOW - timedelta(seconds=1), True),
        (None, True),
        (datetime(2025, 3, 1, 11, 0), True),  # naive, treated as UTC
    ],
    ids=["future", "exact", "past", "missing", "naive_past"],
)
def test_is_expired(expires_at, expected):
    assert is_expired(expires_at, NOW) is expected


# ---------------------------------------------------------------------------
# shared.crypto
# ---------------------------------------------------------------------------


class TestHashPassword:
    def test_returns_argon2id_string(self, fast_hasher):
        assert fast_hasher.hash("secret").startswith("$argon2id$")

    def test_differs_from_input(self, fast_hasher):
        assert fast_hasher.hash("secret") != "secret"

    def test_unique_salts(self, fast_hasher):
        # argon2 produces a new salt each call
        assert fast_hasher.hash("same") != fast_hasher.hash("same")


class TestVerifyPassword:
    @pytest.mark.parametrize(
        "candidate, expected",
        [("correct_password", True), ("wrong_password", False), ("", False)],
        ids=["correct", "wrong", "empty"],
    )
    def test_verify(self, fast_hasher, candidate, expected):
        h = fast_hasher.hash("correct_password")
        assert fast_hasher.verify(candidate, h) is expected

    def test_invalid_hash_returns_false(self, fast_hasher):
        assert fast_hasher.verify("any", "not-a-valid-hash") is False


class TestPasswordHasher:
    def test_cost_parameters_are_encoded(self):
        hasher = PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)
        digest = hasher.hash("secret")
        assert "m=8,t=1,p=1" in digest
        assert hasher.verify("secret", digest) is True

    def test_verifies_hash_from_other_parameters(self):
        digest = PasswordHasher(time_cost=1, memory_cost=8, parallelism=1).hash("secret")
        assert PasswordHasher().verify("secret", digest) is True


@pytest.mark.parametrize(
    "token",
    ["abc", "test", "some_token", "token_with_unicode_é"],
    ids=["short", "simple", "with_underscore", "unicode"],
)
def test_hash_token_is_hex64(token):
    h = hash_token(token)
    assert len(h) == 64
    assert all(c in "0123456789abcdef" for c in h)


def test_hash_token_known_value():
    assert hash_token("test") == hashlib.sha256(b"test").hexdigest()


def test_hash_token_distinct_inputs():
    assert hash_token("token_a") != hash_token("token_b")


# ---------------------------------------------------------------------------
# shared.logging
# ---------------------------------------------------------------------------


def test_redact_sensitive_fields():
    event = {
        "event": "login_failed",
        "password": "hunter2",
        "refresh_token": "abc",
        "api_key": "k",
        "account_id": "123",
        "reason": "invalid_password",
    }
    redacted = redact_sensitive_fields(None, "warning", dict(event))
    assert redacted["password"] == "***REDACTED***"
    assert redacted["refresh_token"] == "***REDACTED***"
    assert redacted["api_key"] == "***REDACTED***"
    assert redacted["account_id"] == "123"
    assert redacted["reason"] == "invalid_password"
    assert redacted["event"] == "login_failed"
