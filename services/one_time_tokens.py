"""
One-time tokens for email verification and password reset.

The plain token only ever travels in the emailed link; the user record holds
its SHA-256 digest. Unknown, consumed and expired tokens all produce the same
error message for a given flow.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from config import AuthPolicySettings
from errors import InvalidLinkError
from repositories.protocol import UserStore
from schemas.models.user import UserDoc
from shared.crypto import hash_password, hash_token
from shared.datetime_utils import Clock, ensure_utc, utcnow
from shared.generators import generate_secure_token
from shared.logging import get_logger

log = get_logger(__name__)

INVALID_VERIFICATION_LINK = "Invalid verification link"
INVALID_RESET_LINK = "Invalid or expired reset link"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    token_hash: str
    expires_at: Optional[datetime] = None


class OneTimeTokenService:
    def __init__(
        self, store: UserStore, settings: AuthPolicySettings, clock: Clock = utcnow
    ) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock

    @staticmethod
    def new_verification_token() -> IssuedToken:
        """Mint a verification token; the caller stores ``token_hash`` on the new user."""
        token = generate_secure_token()
        return IssuedToken(token=token, token_hash=hash_token(token))

    async def reissue_verification_token(self, user: UserDoc) -> IssuedToken:
        """Replace the pending verification token, invalidating the old link."""
        issued = self.new_verification_token()
        await self._store.update_fields(
            user.user_id, {"verification_token": issued.token_hash}
        )
        user.verification_token = issued.token_hash
        log.info("verification_token_issued", user_id=user.user_id)
        return issued

    async def consume_verification_token(self, token: str) -> UserDoc:
        user = await self._store.find_by_verification_token(hash_token(token)) if token else None
        if user is None:
            log.warning("verification_link_invalid")
            raise InvalidLinkError(INVALID_VERIFICATION_LINK)

        await self._store.update_fields(
            user.user_id, {"is_verified": True, "verification_token": None}
        )
        user.is_verified = True
        user.verification_token = None
        log.info("email_verified", user_id=user.user_id)
        return user

    async def issue_reset_token(self, user: UserDoc) -> IssuedToken:
        """Set a fresh reset token + expiry together, overwriting any previous one."""
        token = generate_secure_token()
        expires_at = self._clock() + timedelta(seconds=self._settings.reset_token_ttl_seconds)
        issued = IssuedToken(token=token, token_hash=hash_token(token), expires_at=expires_at)
        await self._store.update_fields(
            user.user_id,
            {"reset_password_token": issued.token_hash, "reset_password_expires": expires_at},
        )
        user.reset_password_token = issued.token_hash
        user.reset_password_expires = expires_at
        log.info("reset_token_issued", user_id=user.user_id)
        return issued

    async def check_reset_token(self, token: str) -> UserDoc:
        """Return the owner of a live reset token or raise InvalidLinkError."""
        user = await self._store.find_by_reset_token(hash_token(token)) if token else None
        expires_at = ensure_utc(user.reset_password_expires) if user else None
        if user is None or expires_at is None or expires_at < self._clock():
            log.warning("reset_link_invalid", user_id=user.user_id if user else None)
            raise InvalidLinkError(INVALID_RESET_LINK)
        return user

    async def reset_password(self, token: str, new_password: str) -> UserDoc:
        # Re-checked here: the link may have expired since the form was loaded
        user = await self.check_reset_token(token)
        password_hash = hash_password(new_password)
        await self._store.update_fields(
            user.user_id,
            {
                "password_hash": password_hash,
                "reset_password_token": None,
                "reset_password_expires": None,
            },
        )
        user.password_hash = password_hash
        user.reset_password_token = None
        user.reset_password_expires = None
        log.info("password_reset", user_id=user.user_id)
        return user
