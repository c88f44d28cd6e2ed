"""
Email + password verification with lockout.

``authenticate`` returns a tagged result instead of raising, so the caller
decides how each outcome is rendered:

    AuthOk(user_id, email)   credentials matched
    AccountLocked(minutes)   locked now or already locked
    InvalidCredentials()     unknown email or wrong password (indistinguishable)

An unknown email never touches any counter. Whether the email is verified is
the caller's concern.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from repositories.protocol import UserStore
from services.lockout import LockoutGuard
from shared.crypto import verify_password
from shared.logging import get_logger
from shared.validators import normalize_email

log = get_logger(__name__)


@dataclass(frozen=True)
class AuthOk:
    user_id: str
    email: str


@dataclass(frozen=True)
class AccountLocked:
    minutes: int

    @property
    def message(self) -> str:
        return f"Account is locked. Please try again in {self.minutes} minutes."


@dataclass(frozen=True)
class InvalidCredentials:
    message: str = "Invalid credentials"


AuthResult = Union[AuthOk, AccountLocked, InvalidCredentials]


class CredentialAuthenticator:
    def __init__(self, store: UserStore, lockout: LockoutGuard) -> None:
        self._store = store
        self._lockout = lockout

    async def authenticate(self, email: str, password: str) -> AuthResult:
        user = await self._store.find_by_email(normalize_email(email))
        if user is None:
            log.warning("login_failed", reason="invalid_credentials")
            return InvalidCredentials()

        if self._lockout.is_locked(user):
            minutes = self._lockout.remaining_minutes(user)
            log.warning("login_rejected", reason="account_locked", user_id=user.user_id)
            return AccountLocked(minutes)

        if not verify_password(password, user.password_hash):
            locked = await self._lockout.record_failure(user)
            log.warning("login_failed", reason="invalid_password", user_id=user.user_id)
            if locked:
                return AccountLocked(self._lockout.lockout_minutes)
            return InvalidCredentials()

        await self._lockout.record_success(user)
        return AuthOk(user_id=user.user_id, email=user.email)
