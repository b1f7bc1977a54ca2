"""AccountStore protocol: services depend on this, not on a storage engine."""

from datetime import datetime
from typing import Optional, Protocol

from schemas.models.account import AccountDoc


class AccountStore(Protocol):
    async def find_by_id(self, account_id: str) -> Optional[AccountDoc]: ...

    async def find_by_email(self, email: str) -> Optional[AccountDoc]: ...

    async def find_by_verification_token(
        self, token_hash: str
    ) -> Optional[AccountDoc]: ...

    async def find_by_reset_token(self, token_hash: str) -> Optional[AccountDoc]: ...

    async def exists_by_email(self, email: str) -> bool: ...

    async def create(self, account: AccountDoc) -> AccountDoc: ...

    async def save(
        self, account: AccountDoc, *, include_lockout: bool = False
    ) -> AccountDoc: ...

    async def increment_failed_attempts(
        self, email: str, *, lock_threshold: int, now: datetime
    ) -> Optional[AccountDoc]: ...

    async def reset_failed_attempts(self, email: str, login_time: datetime) -> None: ...
