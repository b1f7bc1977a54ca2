"""
MongoDB-backed account store.

One document per account in the `accounts` collection. Email is stored
normalized and carries a unique index; opaque token digests carry partial
indexes so token resolution is a single indexed lookup.

Failed-login bookkeeping is done with single-document atomic updates so two
concurrent failed logins for the same email can never lose an increment.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from errors import ConflictError
from schemas.models.account import AccountDoc
from shared.logging import get_logger

log = get_logger(__name__)

ACCOUNTS_COLLECTION = "accounts"

# Owned by the atomic counter operations. save() writes the counters only when
# asked and never writes last_login_at.
LOCKOUT_COUNTER_FIELDS = ("failed_login_attempts", "locked_at")
LOCKOUT_FIELDS = LOCKOUT_COUNTER_FIELDS + ("last_login_at",)


def save_skipped_fields(include_lockout: bool) -> tuple:
    if include_lockout:
        return tuple(f for f in LOCKOUT_FIELDS if f not in LOCKOUT_COUNTER_FIELDS)
    return LOCKOUT_FIELDS


class AccountRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    @classmethod
    def from_database(cls, db: AsyncDatabase) -> "AccountRepository":
        return cls(db[ACCOUNTS_COLLECTION])

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("email", ASCENDING)], unique=True)
        await self._col.create_index(
            [("verification_token_hash", ASCENDING)],
            partialFilterExpression={"verification_token_hash": {"$type": "string"}},
        )
        await self._col.create_index(
            [("consumed_verification_token_hash", ASCENDING)],
            partialFilterExpression={
                "consumed_verification_token_hash": {"$type": "string"}
            },
        )
        await self._col.create_index(
            [("password_reset_token_hash", ASCENDING)],
            partialFilterExpression={"password_reset_token_hash": {"$type": "string"}},
        )
        log.info("account_indexes_ensured", collection=ACCOUNTS_COLLECTION)

    # ── Lookups ──────────────────────────────────────────────────────────────

    async def find_by_id(self, account_id: str) -> Optional[AccountDoc]:
        if not ObjectId.is_valid(account_id):
            return None
        doc = await self._col.find_one({"_id": ObjectId(account_id)})
        return AccountDoc.from_mongo(doc)

    async def find_by_email(self, email: str) -> Optional[AccountDoc]:
        doc = await self._col.find_one({"email": email})
        return AccountDoc.from_mongo(doc)

    async def find_by_verification_token(self, token_hash: str) -> Optional[AccountDoc]:
        """Match a pending token, or the one that already completed verification."""
        doc = await self._col.find_one(
            {
                "$or": [
                    {"verification_token_hash": token_hash},
                    {"consumed_verification_token_hash": token_hash},
                ]
            }
        )
        return AccountDoc.from_mongo(doc)

    async def find_by_reset_token(self, token_hash: str) -> Optional[AccountDoc]:
        doc = await self._col.find_one({"password_reset_token_hash": token_hash})
        return AccountDoc.from_mongo(doc)

    async def exists_by_email(self, email: str) -> bool:
        return await self._col.count_documents({"email": email}, limit=1) > 0

    # ── Writes ───────────────────────────────────────────────────────────────

    async def create(self, account: AccountDoc) -> AccountDoc:
        try:
            result = await self._col.insert_one(account.to_mongo())
        except DuplicateKeyError:
            # Registered between the existence check and the insert
            log.warning("account_create_conflict", reason="duplicate_email")
            raise ConflictError("an account with this email already exists", field="email")
        return account.model_copy(update={"id": result.inserted_id})

    async def save(self, account: AccountDoc, *, include_lockout: bool = False) -> AccountDoc:
        """Persist *account* by id.

        Lockout fields are skipped unless *include_lockout* is set, so a
        profile or password write never clobbers a concurrent counter update.
        ``last_login_at`` is always skipped.
        """
        if account.id is None:
            raise ValueError("cannot save an account without an id")
        data = account.to_mongo()
        data.pop("_id", None)
        for field in save_skipped_fields(include_lockout):
            data.pop(field, None)
        await self._col.update_one({"_id": account.id}, {"$set": data})
        return account

    async def increment_failed_attempts(
        self, email: str, *, lock_threshold: int, now: datetime
    ) -> Optional[AccountDoc]:
        """Atomically bump the counter and lock once it reaches *lock_threshold*.

        Returns the post-update document, or ``None`` if no account matched.
        """
        pipeline = [
            {
                "$set": {
                    "failed_login_attempts": {
                        "$add": [{"$ifNull": ["$failed_login_attempts", 0]}, 1]
                    },
                    "updated_at": now,
                }
            },
            {
                "$set": {
                    "locked_at": {
                        "$cond": [
                            {"$gte": ["$failed_login_attempts", lock_threshold]},
                            now,
                            "$locked_at",
                        ]
                    }
                }
            },
        ]
        doc = await self._col.find_one_and_update(
            {"email": email},
            pipeline,
            return_document=ReturnDocument.AFTER,
        )
        return AccountDoc.from_mongo(doc)

    async def reset_failed_attempts(self, email: str, login_time: datetime) -> None:
        await self._col.update_one(
            {"email": email},
            {
                "$set": {
                    "failed_login_attempts": 0,
                    "locked_at": None,
                    "last_login_at": login_time,
                }
            },
        )
