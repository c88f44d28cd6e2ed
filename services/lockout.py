"""
Account lockout after repeated failed logins.

Unlocked --(Nth consecutive failure)--> Locked(until=now+window)
Locked   --(now > until, lazily or via sweep)--> Unlocked, attempts = 0

Concurrent logins for one account may race on ``login_attempts``; the store
resolves it last-writer-wins.
"""

from __future__ import annotations

from datetime import timedelta

from config import AuthPolicySettings
from repositories.protocol import UserStore
from schemas.models.user import UserDoc
from shared.datetime_utils import Clock, ensure_utc, minutes_until, utcnow
from shared.logging import get_logger

log = get_logger(__name__)


class LockoutGuard:
    def __init__(
        self, store: UserStore, settings: AuthPolicySettings, clock: Clock = utcnow
    ) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock

    @property
    def lockout_minutes(self) -> int:
        return self._settings.lockout_minutes

    def is_locked(self, user: UserDoc) -> bool:
        locked_until = ensure_utc(user.locked_until)
        return locked_until is not None and locked_until > self._clock()

    def remaining_minutes(self, user: UserDoc) -> int:
        if user.locked_until is None:
            return 0
        return minutes_until(user.locked_until, self._clock())

    async def record_failure(self, user: UserDoc) -> bool:
        """Count a failed attempt. Returns True when this attempt locked the account."""
        attempts = user.login_attempts + 1

        if attempts >= self._settings.max_login_attempts:
            locked_until = self._clock() + timedelta(minutes=self._settings.lockout_minutes)
            # Attempts reset with the lock so an unlocked account starts clean
            await self._store.update_fields(
                user.user_id, {"login_attempts": 0, "locked_until": locked_until}
            )
            user.login_attempts = 0
            user.locked_until = locked_until
            log.warning(
                "account_locked",
                user_id=user.user_id,
                locked_until=locked_until.isoformat(),
            )
            return True

        fields: dict = {"login_attempts": attempts}
        if user.locked_until is not None:
            # Lapsed lock that no sweep has cleared yet
            fields["locked_until"] = None
        await self._store.update_fields(user.user_id, fields)
        user.login_attempts = attempts
        user.locked_until = None
        log.info("login_attempt_recorded", user_id=user.user_id, attempts=attempts)
        return False

    async def record_success(self, user: UserDoc) -> None:
        await self._store.update_fields(
            user.user_id, {"login_attempts": 0, "locked_until": None}
        )
        user.login_attempts = 0
        user.locked_until = None

    async def sweep_expired_locks(self) -> int:
        """Unlock every account whose lock window has passed. Safe to repeat."""
        unlocked = await self._store.clear_expired_locks(self._clock())
        if unlocked:
            log.info("expired_locks_cleared", count=unlocked)
        return unlocked
