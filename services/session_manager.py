"""
Access/refresh session handling.

The session cookie carries only the access token. The refresh token and its
expiry live on the user record and never leave the server; when the access
token lapses, the user id is read from its (still correctly signed) payload
and the stored refresh token is checked on that user's behalf.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from errors import AuthorizationError
from infrastructure.cookies import CookieStore
from repositories.protocol import UserStore
from schemas.models.user import UserDoc
from services.token_codec import TokenCodec
from shared.datetime_utils import Clock, ensure_utc, utcnow
from shared.logging import get_logger

log = get_logger(__name__)

ACCESS_TOKEN_KEY = "access_token"


@dataclass(frozen=True)
class SessionTokens:
    access_token: str
    refresh_token: str


class SessionManager:
    def __init__(
        self,
        store: UserStore,
        codec: TokenCodec,
        cookies: CookieStore,
        refresh_ttl_seconds: int,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._codec = codec
        self._cookies = cookies
        self._refresh_ttl = timedelta(seconds=refresh_ttl_seconds)
        self._clock = clock

    def _write_access_token(self, response: Response, access_token: str) -> None:
        self._cookies.commit(response, {ACCESS_TOKEN_KEY: access_token})

    def _session_token(self, request: Request) -> Optional[str]:
        return self._cookies.load(request).get(ACCESS_TOKEN_KEY)

    async def create_session(self, user_id: str, response: Response) -> SessionTokens:
        access_token = self._codec.issue_access_token(user_id)
        refresh_token = self._codec.issue_refresh_token(user_id)
        await self._store.update_fields(
            user_id,
            {
                "refresh_token": refresh_token,
                "refresh_token_expires": self._clock() + self._refresh_ttl,
            },
        )
        self._write_access_token(response, access_token)
        log.info("session_created", user_id=user_id)
        return SessionTokens(access_token=access_token, refresh_token=refresh_token)

    def resolve_identity(self, request: Request) -> Optional[str]:
        return self._codec.verify_access_token(self._session_token(request))

    def session_subject(self, request: Request) -> Optional[str]:
        """User id named by the session's access token, valid or lapsed."""
        return self._codec.peek_subject(self._session_token(request), self._codec.access_secret)

    async def refresh(self, user_id: Optional[str]) -> Optional[str]:
        """Mint a new access token from the user's stored refresh token, or None."""
        if not user_id:
            return None
        user = await self._store.find_by_id(user_id)
        if user is None or not user.refresh_token:
            return None
        expires_at = ensure_utc(user.refresh_token_expires)
        # Stored expiry and the token's own exp are both required to pass
        if expires_at is None or expires_at < self._clock():
            log.info("refresh_rejected", user_id=user_id, reason="stored_expiry_passed")
            return None
        if self._codec.verify_refresh_token(user.refresh_token) != user_id:
            log.info("refresh_rejected", user_id=user_id, reason="token_invalid")
            return None
        return self._codec.issue_access_token(user_id)

    async def authenticate_request(self, request: Request, response: Response) -> str:
        """Identify the caller, refreshing the access token if it has lapsed.

        A refreshed token is written to the session cookie on *response*.
        Raises AuthorizationError when neither path yields a user.
        """
        user_id = self.resolve_identity(request)
        if user_id:
            return user_id

        subject = self.session_subject(request)
        new_access_token = await self.refresh(subject)
        if not new_access_token:
            raise AuthorizationError("Unauthorized")

        self._write_access_token(response, new_access_token)
        log.info("access_token_refreshed", user_id=subject)
        return subject

    def reissue_access_token(self, user_id: str, response: Response) -> str:
        """Write a full-lifetime access token for *user_id*; the refresh token is untouched."""
        access_token = self._codec.issue_access_token(user_id)
        self._write_access_token(response, access_token)
        return access_token

    async def require_user(self, request: Request, response: Response) -> UserDoc:
        user_id = await self.authenticate_request(request, response)
        user = await self._store.find_by_id(user_id)
        if user is None:
            log.warning("session_user_missing", user_id=user_id)
            raise AuthorizationError("Unauthorized")
        return user

    async def destroy_session(self, request: Request, response: Response) -> None:
        user_id = self.resolve_identity(request) or self.session_subject(request)
        if user_id:
            await self._store.update_fields(
                user_id, {"refresh_token": None, "refresh_token_expires": None}
            )
            log.info("session_destroyed", user_id=user_id)
        self._cookies.destroy(response)
