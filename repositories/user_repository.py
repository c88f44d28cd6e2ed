"""
MongoDB repository for the `users` collection.

Every write is a single-document ``update_one``/``insert_one`` so that fields
which belong together (token + expiry, attempts + lock) land atomically.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Optional

from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from errors import ConflictError
from schemas.models.base import PyObjectId
from schemas.models.user import UserDoc
from shared.logging import get_logger

log = get_logger(__name__)


class UserRepository:
    def __init__(self, collection) -> None:
        self._col = collection

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"email": email.strip().lower()})
        return UserDoc.from_mongo(doc)

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        oid = PyObjectId.parse(user_id)
        if oid is None:
            return None
        doc = await self._col.find_one({"_id": oid})
        return UserDoc.from_mongo(doc)

    async def find_by_verification_token(self, token_hash: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"verification_token": token_hash})
        return UserDoc.from_mongo(doc)

    async def find_by_reset_token(self, token_hash: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"reset_password_token": token_hash})
        return UserDoc.from_mongo(doc)

    async def create(self, user: UserDoc) -> UserDoc:
        user.stamp(datetime.now(timezone.utc))
        try:
            result = await self._col.insert_one(user.to_mongo())
        except DuplicateKeyError:
            # Race condition: email was registered between our check and insert
            log.warning("user_create_failed", reason="duplicate_email")
            raise ConflictError("email already registered", field="email")
        user.id = result.inserted_id
        return user

    async def update_fields(self, user_id: str, fields: dict[str, Any]) -> bool:
        oid = PyObjectId.parse(user_id)
        if oid is None:
            return False
        update = {**fields, "updated_at": datetime.now(timezone.utc)}
        try:
            result = await self._col.update_one({"_id": oid}, {"$set": update})
        except DuplicateKeyError:
            log.warning("user_update_failed", user_id=str(oid), reason="duplicate_email")
            raise ConflictError("email already registered", field="email")
        return result.matched_count > 0

    async def clear_expired_locks(self, now: datetime) -> int:
        result = await self._col.update_many(
            {"locked_until": {"$lt": now}},
            {"$set": {"locked_until": None, "login_attempts": 0, "updated_at": now}},
        )
        return result.modified_count

    async def list_users(self, text_filter: str = "", limit: int = 100) -> list[UserDoc]:
        query: dict = {}
        if text_filter:
            pattern = {"$regex": re.escape(text_filter), "$options": "i"}
            query = {"$or": [{"name": pattern}, {"surname": pattern}, {"email": pattern}]}
        cursor = self._col.find(query).sort("_id", ASCENDING).limit(limit)
        return [UserDoc.from_mongo(doc) async for doc in cursor]

    async def delete(self, user_id: str) -> bool:
        oid = PyObjectId.parse(user_id)
        if oid is None:
            return False
        result = await self._col.delete_one({"_id": oid})
        return result.deleted_count > 0

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("email", ASCENDING)], unique=True)
        await self._col.create_index([("verification_token", ASCENDING)], sparse=True)
        await self._col.create_index([("reset_password_token", ASCENDING)], sparse=True)
        await self._col.create_index([("locked_until", ASCENDING)], sparse=True)
        log.info("user_indexes_ensured")
