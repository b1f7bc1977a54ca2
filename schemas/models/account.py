"""
Account document model.

Maps to the `accounts` MongoDB collection.

Security state lives on the account itself:
- verification_token_hash / verification_token_expires_at are set only while
  an email verification is pending
- password_reset_token_hash / password_reset_token_expires_at are set only
  while a reset is pending; a newer request overwrites them
- failed_login_attempts and locked_at drive the lockout policy

Only SHA-256 digests of opaque tokens are stored, never the token itself.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel


class AccountDoc(MongoBaseModel):
    """Document model for the `accounts` collection."""

    first_name: str
    last_name: str
    email: str
    password_hash: str
    is_verified: bool = False

    verification_token_hash: Optional[str] = None
    verification_token_expires_at: Optional[datetime] = None
    # Digest of the token that completed verification; lets a replayed link
    # resolve to "already verified" instead of "invalid".
    consumed_verification_token_hash: Optional[str] = None

    password_reset_token_hash: Optional[str] = None
    password_reset_token_expires_at: Optional[datetime] = None

    failed_login_attempts: int = Field(default=0, ge=0)
    locked_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @property
    def account_id(self) -> str:
        return str(self.id) if self.id is not None else ""
