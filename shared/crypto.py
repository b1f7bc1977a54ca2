"""
Cryptographic helpers: password hashing and token hashing.

Uses argon2id for passwords (via argon2-cffi) and SHA-256 for opaque token
digests. Only digests of verification/reset tokens are persisted.
"""

from __future__ import annotations

import hashlib

import argon2
from argon2.exceptions import InvalidHashError, VerificationError


class PasswordHasher:
    """One-way adaptive password hash with tunable cost.

    Thin wrapper that flips argon2's ``verify(hash, password)`` argument order
    into ``verify(password, hash)`` and turns mismatches into ``False``.
    """

    def __init__(
        self,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 4,
    ) -> None:
        self._hasher = argon2.PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )

    def hash(self, plain_password: str) -> str:
        """Return an argon2id hash (algorithm parameters and salt included)."""
        return self._hasher.hash(plain_password)

    def verify(self, plain_password: str, password_hash: str) -> bool:
        """Return ``True`` if *plain_password* matches *password_hash*.

        Wrong passwords and unparseable hashes both yield ``False``.
        """
        try:
            return self._hasher.verify(password_hash, plain_password)
        except (VerificationError, InvalidHashError):
            return False


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*.

    Used to hash verification and reset tokens before storing them so the
    plaintext link value is never persisted.

    Returns:
        64-character lowercase hex string.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
