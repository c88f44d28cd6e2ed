"""
User document model.

Maps to the `users` MongoDB collection.

Paired fields are written together by every service that touches them:
- reset_password_token / reset_password_expires
- refresh_token / refresh_token_expires

verification_token and reset_password_token hold SHA-256 digests of the
values mailed to the user; the plain tokens are never stored.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoDocument


class UserDoc(MongoDocument):
    """Document model for the `users` collection."""

    email: str
    password_hash: str
    name: str
    surname: str
    is_verified: bool = False
    verification_token: Optional[str] = None
    reset_password_token: Optional[str] = None
    reset_password_expires: Optional[datetime] = None
    refresh_token: Optional[str] = None
    refresh_token_expires: Optional[datetime] = None
    login_attempts: int = Field(default=0, ge=0)
    locked_until: Optional[datetime] = None

    @property
    def user_id(self) -> str:
        return str(self.id)
