"""
Signed access/refresh tokens (JWT, PyJWT).

Access and refresh tokens are signed with separate secrets and carry a
``type`` claim, so one class can never be replayed as the other. Every
verification failure (bad signature, malformed payload, expiry, wrong type)
collapses to ``None``; callers cannot tell which check failed.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

import jwt

from config import JWTSettings
from shared.datetime_utils import Clock, utcnow

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


class TokenCodec:
    def __init__(self, settings: JWTSettings, clock: Clock = utcnow) -> None:
        self._settings = settings
        self._clock = clock

    @property
    def access_secret(self) -> str:
        return self._settings.access_token_secret

    @property
    def refresh_secret(self) -> str:
        return self._settings.refresh_token_secret

    def _issue(self, user_id: str, secret: str, token_type: str, ttl_seconds: int) -> str:
        now = self._clock()
        claims = {
            "sub": str(user_id),
            "type": token_type,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        }
        return jwt.encode(claims, secret, algorithm=self._settings.jwt_algorithm)

    def issue_access_token(self, user_id: str) -> str:
        return self._issue(
            user_id,
            self.access_secret,
            TOKEN_TYPE_ACCESS,
            self._settings.access_token_ttl_seconds,
        )

    def issue_refresh_token(self, user_id: str) -> str:
        return self._issue(
            user_id,
            self.refresh_secret,
            TOKEN_TYPE_REFRESH,
            self._settings.refresh_token_ttl_seconds,
        )

    def _decode(self, token: Optional[str], secret: str) -> Optional[dict]:
        if not token:
            return None
        try:
            # exp/iat are checked against the injected clock below, not wall time
            return jwt.decode(
                token,
                secret,
                algorithms=[self._settings.jwt_algorithm],
                options={
                    "require": ["sub", "exp", "type"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError:
            return None

    def _expected_type(self, secret: str) -> str:
        return TOKEN_TYPE_REFRESH if secret == self.refresh_secret else TOKEN_TYPE_ACCESS

    def verify(
        self, token: Optional[str], secret: str, token_type: Optional[str] = None
    ) -> Optional[str]:
        """Return the user id carried by *token*, or None if it is not valid now."""
        claims = self._decode(token, secret)
        expected = token_type or self._expected_type(secret)
        if claims is None or claims.get("type") != expected:
            return None
        try:
            expires_at = int(claims["exp"])
        except (TypeError, ValueError):
            return None
        if expires_at <= int(self._clock().timestamp()):
            return None
        return str(claims["sub"])

    def verify_access_token(self, token: Optional[str]) -> Optional[str]:
        return self.verify(token, self.access_secret, TOKEN_TYPE_ACCESS)

    def verify_refresh_token(self, token: Optional[str]) -> Optional[str]:
        return self.verify(token, self.refresh_secret, TOKEN_TYPE_REFRESH)

    def peek_subject(self, token: Optional[str], secret: str) -> Optional[str]:
        """Return the user id of a correctly signed token, ignoring expiry.

        Only used to find whose server-side refresh token to consult once the
        access token has lapsed; never grants access on its own.
        """
        claims = self._decode(token, secret)
        if claims is None or claims.get("type") != self._expected_type(secret):
            return None
        return str(claims["sub"])
