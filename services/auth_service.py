"""
Account lifecycle: registration, email verification, login with lockout,
token refresh, password reset and profile changes.

AccountService is the only component that combines the store, the token
codec, the password hasher, the lockout policy and the notification
dispatcher. It raises typed AppErrors; translating them to HTTP is the
boundary layer's job.

Concurrency notes:
- failed-login counting goes through the store's atomic increment, never a
  read-modify-write here
- ordinary saves leave the lockout fields alone, so a profile edit cannot
  undo a concurrent lock
- argon2 hashing and verification run in a worker thread, off the event
  loop
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Optional, Tuple

from config import SecuritySettings
from errors import (
    AccountLockedError,
    AccountNotVerifiedError,
    AlreadyVerifiedError,
    ConflictError,
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from repositories.protocol import AccountStore
from schemas.dto.responses.auth import (
    AuthTokensResponse,
    ForgotPasswordResponse,
    UserInfoResponse,
)
from schemas.models.account import AccountDoc
from services.lockout import LockoutPolicy
from services.notifications import NotificationDispatcher, NotificationKind
from services.token_service import TokenCodec
from shared.crypto import PasswordHasher, hash_token
from shared.datetime_utils import Clock, is_expired, utcnow
from shared.logging import get_logger
from shared.validators import (
    normalize_email,
    validate_email,
    validate_name,
    validate_password,
)

log = get_logger(__name__)

DEFAULT_VERIFICATION_TTL = timedelta(hours=24)
DEFAULT_RESET_TTL = timedelta(hours=1)

_INVALID_CREDENTIALS = "invalid email or password"
_ACCOUNT_LOCKED = (
    "account is locked due to too many failed login attempts, please try again later"
)


class AccountService:
    def __init__(
        self,
        store: AccountStore,
        codec: TokenCodec,
        notifier: NotificationDispatcher,
        hasher: Optional[PasswordHasher] = None,
        lockout: Optional[LockoutPolicy] = None,
        verification_ttl: timedelta = DEFAULT_VERIFICATION_TTL,
        reset_ttl: timedelta = DEFAULT_RESET_TTL,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._codec = codec
        self._notifier = notifier
        self._hasher = hasher or PasswordHasher()
        self._lockout = lockout or LockoutPolicy()
        self._verification_ttl = verification_ttl
        self._reset_ttl = reset_ttl
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: SecuritySettings,
        *,
        store: AccountStore,
        codec: TokenCodec,
        notifier: NotificationDispatcher,
        clock: Clock = utcnow,
    ) -> "AccountService":
        return cls(
            store=store,
            codec=codec,
            notifier=notifier,
            hasher=PasswordHasher(
                time_cost=settings.argon2_time_cost,
                memory_cost=settings.argon2_memory_cost,
                parallelism=settings.argon2_parallelism,
            ),
            lockout=LockoutPolicy.from_settings(settings),
            verification_ttl=timedelta(hours=settings.verification_token_ttl_hours),
            reset_ttl=timedelta(hours=settings.password_reset_token_ttl_hours),
            clock=clock,
        )

    # ── Helpers ──────────────────────────────────────────────────────────────

    async def _hash_password(self, password: str) -> str:
        return await asyncio.to_thread(self._hasher.hash, password)

    async def _password_matches(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self._hasher.verify, password, password_hash)

    @staticmethod
    def _check_password_policy(password: str, field: str) -> None:
        is_valid, missing = validate_password(password)
        if not is_valid:
            raise ValidationError(
                "password does not meet requirements",
                field=field,
                details={"missing_requirements": missing},
            )

    @staticmethod
    def _clean_names(first_name: str, last_name: str) -> Tuple[str, str]:
        first = (first_name or "").strip()
        last = (last_name or "").strip()
        if not validate_name(first):
            raise ValidationError("first name must be 1-100 characters", field="first_name")
        if not validate_name(last):
            raise ValidationError("last name must be 1-100 characters", field="last_name")
        return first, last

    def _notify(self, kind: NotificationKind, account: AccountDoc, **data) -> None:
        queued = self._notifier.send(
            kind, account.email, {"first_name": account.first_name, **data}
        )
        if not queued:
            log.warning(
                "notification_not_queued",
                kind=kind.value,
                account_id=account.account_id,
            )

    def _issue_tokens(self, account: AccountDoc, now: datetime) -> AuthTokensResponse:
        access, expires_in = self._codec.issue_access_token(
            account.account_id, account.email
        )
        refresh = self._codec.issue_refresh_token(account.account_id)
        return AuthTokensResponse(
            access_token=access,
            refresh_token=refresh,
            expires_in=expires_in,
            issued_at=now,
            user=UserInfoResponse.from_account(account),
        )

    async def _require_account(self, account_id: str) -> AccountDoc:
        account = await self._store.find_by_id(account_id)
        if account is None:
            raise NotFoundError("account not found")
        return account

    # ── Registration & verification ──────────────────────────────────────────

    async def register(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> UserInfoResponse:
        if password != confirm_password:
            raise ValidationError(
                "password and confirm password do not match", field="confirm_password"
            )
        first, last = self._clean_names(first_name, last_name)
        email = normalize_email(email)
        if not validate_email(email):
            raise ValidationError("invalid email address", field="email")
        self._check_password_policy(password, field="password")

        if await self._store.exists_by_email(email):
            log.warning("registration_failed", reason="email_exists")
            raise ConflictError("an account with this email already exists", field="email")

        now = self._clock()
        token = self._codec.new_opaque_token()
        account = await self._store.create(
            AccountDoc(
                first_name=first,
                last_name=last,
                email=email,
                password_hash=await self._hash_password(password),
                is_verified=False,
                verification_token_hash=hash_token(token),
                verification_token_expires_at=now + self._verification_ttl,
                created_at=now,
                updated_at=now,
            )
        )
        log.info("account_registered", account_id=account.account_id)

        self._notify(NotificationKind.VERIFY, account, token=token)
        return UserInfoResponse.from_account(account)

    async def verify_email(self, token: str) -> UserInfoResponse:
        token_hash = hash_token(token) if token else None
        account = (
            await self._store.find_by_verification_token(token_hash)
            if token_hash
            else None
        )
        if account is None:
            log.warning("email_verification_failed", reason="unknown_token")
            raise InvalidTokenError("invalid verification token")
        if account.verification_token_hash != token_hash:
            # Matched the digest kept from a completed verification
            raise AlreadyVerifiedError("account is already verified")

        now = self._clock()
        if is_expired(account.verification_token_expires_at, now):
            log.warning("email_verification_failed", reason="expired", account_id=account.account_id)
            raise ExpiredTokenError(
                "verification token has expired, please request a new one"
            )
        if account.is_verified:
            raise AlreadyVerifiedError("account is already verified")

        account = await self._store.save(
            account.model_copy(
                update={
                    "is_verified": True,
                    "verification_token_hash": None,
                    "verification_token_expires_at": None,
                    "consumed_verification_token_hash": token_hash,
                    "updated_at": now,
                }
            )
        )
        log.info("email_verified", account_id=account.account_id)

        self._notify(NotificationKind.WELCOME, account)
        return UserInfoResponse.from_account(account)

    async def resend_verification(self, email: str) -> None:
        account = await self._store.find_by_email(normalize_email(email))
        if account is None:
            raise NotFoundError("account not found")
        if account.is_verified:
            raise AlreadyVerifiedError("account is already verified")

        now = self._clock()
        token = self._codec.new_opaque_token()
        account = await self._store.save(
            account.model_copy(
                update={
                    "verification_token_hash": hash_token(token),
                    "verification_token_expires_at": now + self._verification_ttl,
                    "updated_at": now,
                }
            )
        )
        log.info("verification_resent", account_id=account.account_id)
        self._notify(NotificationKind.VERIFY, account, token=token)

    # ── Sessions ─────────────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> AuthTokensResponse:
        """Authenticate and issue a token pair.

        Checks run in a fixed order: unknown email, active lock, unverified
        account, then the password itself. Only a wrong password touches the
        failed-attempt counter.
        """
        email = normalize_email(email)
        account = await self._store.find_by_email(email) if email else None
        if account is None:
            log.warning("login_failed", reason="invalid_credentials", email_exists=False)
            raise InvalidCredentialsError(_INVALID_CREDENTIALS)

        now = self._clock()
        if self._lockout.is_locked(account.locked_at, now):
            unlocks_at = self._lockout.unlocks_at(account.locked_at)
            log.warning(
                "login_blocked",
                reason="account_locked",
                account_id=account.account_id,
                unlocks_at=unlocks_at.isoformat(),
            )
            raise AccountLockedError(_ACCOUNT_LOCKED)

        if not account.is_verified:
            raise AccountNotVerifiedError(
                "please verify your email address before logging in"
            )

        if not await self._password_matches(password or "", account.password_hash):
            updated = await self._store.increment_failed_attempts(
                email, lock_threshold=self._lockout.max_attempts, now=now
            )
            attempts = (
                updated.failed_login_attempts
                if updated is not None
                else account.failed_login_attempts + 1
            )
            if self._lockout.should_lock(attempts):
                log.warning(
                    "account_locked",
                    account_id=account.account_id,
                    failed_attempts=attempts,
                )
                raise AccountLockedError(_ACCOUNT_LOCKED)
            log.warning(
                "login_failed",
                reason="invalid_password",
                account_id=account.account_id,
                failed_attempts=attempts,
            )
            raise InvalidCredentialsError(_INVALID_CREDENTIALS)

        await self._store.reset_failed_attempts(email, now)
        account = account.model_copy(
            update={"failed_login_attempts": 0, "locked_at": None, "last_login_at": now}
        )
        log.info("login_success", account_id=account.account_id)
        return self._issue_tokens(account, now)

    async def refresh(self, refresh_token: str) -> AuthTokensResponse:
        """Rotate a refresh token into a fresh access + refresh pair."""
        claims = self._codec.verify_refresh_token(refresh_token)
        account = await self._store.find_by_id(claims.account_id)
        if account is None:
            log.warning("refresh_failed", reason="account_missing")
            raise InvalidTokenError("invalid or expired token")

        now = self._clock()
        if self._lockout.is_locked(account.locked_at, now):
            raise AccountLockedError(_ACCOUNT_LOCKED)
        if not account.is_verified:
            raise AccountNotVerifiedError(
                "please verify your email address before logging in"
            )

        log.info("session_refreshed", account_id=account.account_id)
        return self._issue_tokens(account, now)

    # ── Password reset ───────────────────────────────────────────────────────

    async def _start_password_reset(self, email: str) -> None:
        account = await self._store.find_by_email(email) if email else None
        if account is None:
            raise NotFoundError("account not found")
        if not account.is_verified:
            raise AccountNotVerifiedError("account is not verified")

        now = self._clock()
        token = self._codec.new_opaque_token()
        # Overwrites any earlier pending reset, so only the newest link works
        account = await self._store.save(
            account.model_copy(
                update={
                    "password_reset_token_hash": hash_token(token),
                    "password_reset_token_expires_at": now + self._reset_ttl,
                    "updated_at": now,
                }
            )
        )
        log.info("password_reset_requested", account_id=account.account_id)
        self._notify(NotificationKind.RESET, account, token=token)

    async def forgot_password(self, email: str) -> ForgotPasswordResponse:
        """Start a reset if possible. The response never reveals whether it did."""
        try:
            await self._start_password_reset(normalize_email(email))
        except (NotFoundError, AccountNotVerifiedError) as e:
            log.info("password_reset_skipped", reason=e.error_code)
        return ForgotPasswordResponse()

    async def validate_reset_token(self, token: str) -> bool:
        if not token:
            return False
        account = await self._store.find_by_reset_token(hash_token(token))
        if account is None:
            return False
        return not is_expired(account.password_reset_token_expires_at, self._clock())

    async def reset_password(self, token: str, new_password: str) -> None:
        account = (
            await self._store.find_by_reset_token(hash_token(token)) if token else None
        )
        if account is None:
            log.warning("password_reset_failed", reason="unknown_token")
            raise InvalidTokenError("invalid reset token")

        now = self._clock()
        if is_expired(account.password_reset_token_expires_at, now):
            log.warning("password_reset_failed", reason="expired", account_id=account.account_id)
            raise ExpiredTokenError(
                "reset token has expired, please request a new password reset"
            )
        self._check_password_policy(new_password, field="new_password")

        # A successful reset also lifts any lock and clears the counter
        await self._store.save(
            account.model_copy(
                update={
                    "password_hash": await self._hash_password(new_password),
                    "password_reset_token_hash": None,
                    "password_reset_token_expires_at": None,
                    "failed_login_attempts": 0,
                    "locked_at": None,
                    "updated_at": now,
                }
            ),
            include_lockout=True,
        )
        log.info("password_reset_completed", account_id=account.account_id)

    async def change_password(
        self, account_id: str, current_password: str, new_password: str
    ) -> None:
        account = await self._require_account(account_id)
        if not await self._password_matches(current_password or "", account.password_hash):
            log.warning("password_change_failed", reason="wrong_current", account_id=account_id)
            raise InvalidCredentialsError("current password is incorrect")
        self._check_password_policy(new_password, field="new_password")

        await self._store.save(
            account.model_copy(
                update={
                    "password_hash": await self._hash_password(new_password),
                    "updated_at": self._clock(),
                }
            )
        )
        log.info("password_changed", account_id=account_id)

    # ── Profile ──────────────────────────────────────────────────────────────

    async def get_profile(self, account_id: str) -> UserInfoResponse:
        return UserInfoResponse.from_account(await self._require_account(account_id))

    async def update_profile(
        self, account_id: str, first_name: str, last_name: str
    ) -> UserInfoResponse:
        account = await self._require_account(account_id)
        first, last = self._clean_names(first_name, last_name)
        account = await self._store.save(
            account.model_copy(
                update={"first_name": first, "last_name": last, "updated_at": self._clock()}
            )
        )
        log.info("profile_updated", account_id=account_id)
        return UserInfoResponse.from_account(account)
