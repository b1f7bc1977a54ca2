"""
In-process account store.

Same contract as AccountRepository, backed by dicts and a single asyncio
lock. Used for local development without MongoDB and by the test suite.
Documents are frozen AccountDoc snapshots, so handing them out is safe.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Dict, Optional

from bson import ObjectId

from errors import ConflictError
from repositories.account_repository import save_skipped_fields
from schemas.models.account import AccountDoc


class InMemoryAccountStore:
    def __init__(self) -> None:
        self._by_id: Dict[str, AccountDoc] = {}
        self._id_by_email: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._by_id)

    async def find_by_id(self, account_id: str) -> Optional[AccountDoc]:
        return self._by_id.get(account_id)

    async def find_by_email(self, email: str) -> Optional[AccountDoc]:
        account_id = self._id_by_email.get(email)
        return self._by_id.get(account_id) if account_id else None

    async def find_by_verification_token(self, token_hash: str) -> Optional[AccountDoc]:
        for account in self._by_id.values():
            if token_hash in (
                account.verification_token_hash,
                account.consumed_verification_token_hash,
            ):
                return account
        return None

    async def find_by_reset_token(self, token_hash: str) -> Optional[AccountDoc]:
        for account in self._by_id.values():
            if account.password_reset_token_hash == token_hash:
                return account
        return None

    async def exists_by_email(self, email: str) -> bool:
        return email in self._id_by_email

    async def create(self, account: AccountDoc) -> AccountDoc:
        async with self._lock:
            if account.email in self._id_by_email:
                raise ConflictError(
                    "an account with this email already exists", field="email"
                )
            created = account.model_copy(update={"id": account.id or ObjectId()})
            self._by_id[created.account_id] = created
            self._id_by_email[created.email] = created.account_id
            return created

    async def save(self, account: AccountDoc, *, include_lockout: bool = False) -> AccountDoc:
        if account.id is None:
            raise ValueError("cannot save an account without an id")
        async with self._lock:
            current = self._by_id.get(account.account_id)
            if current is None:
                return account
            stored = account.model_copy(
                update={
                    field: getattr(current, field)
                    for field in save_skipped_fields(include_lockout)
                }
            )
            self._by_id[stored.account_id] = stored
            return account

    async def increment_failed_attempts(
        self, email: str, *, lock_threshold: int, now: datetime
    ) -> Optional[AccountDoc]:
        async with self._lock:
            current = await self.find_by_email(email)
            if current is None:
                return None
            attempts = current.failed_login_attempts + 1
            updated = current.model_copy(
                update={
                    "failed_login_attempts": attempts,
                    "locked_at": now if attempts >= lock_threshold else current.locked_at,
                    "updated_at": now,
                }
            )
            self._by_id[updated.account_id] = updated
            return updated

    async def reset_failed_attempts(self, email: str, login_time: datetime) -> None:
        async with self._lock:
            current = await self.find_by_email(email)
            if current is None:
                return
            self._by_id[current.account_id] = current.model_copy(
                update={
                    "failed_login_attempts": 0,
                    "locked_at": None,
                    "last_login_at": login_time,
                }
            )
