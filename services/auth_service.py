"""
Registration, verification, login/logout and password-reset flows.

Glues the auth core (authenticator, one-time tokens, sessions) to the user
store and the mail provider, and turns core outcomes into AppErrors.
"""

from __future__ import annotations

from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from errors import (
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    EmailDeliveryError,
    ForbiddenError,
)
from infrastructure.email.protocol import EmailProvider
from repositories.protocol import UserStore
from schemas.dto.requests.auth import LoginRequest, RegisterRequest
from schemas.models.user import UserDoc
from services.authenticator import AccountLocked, AuthOk, CredentialAuthenticator
from services.one_time_tokens import OneTimeTokenService
from services.session_manager import SessionManager, SessionTokens
from shared.crypto import hash_password
from shared.logging import get_logger

log = get_logger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account with that email exists, we've sent a password reset link."
)
RESEND_VERIFICATION_MESSAGE = (
    "If an unverified account with that email exists, we've sent a new verification link."
)
REGISTERED_MESSAGE = "Please check your email to verify your account."
UNVERIFIED_MESSAGE = "Please verify your email before logging in"


class AuthService:
    def __init__(
        self,
        store: UserStore,
        authenticator: CredentialAuthenticator,
        tokens: OneTimeTokenService,
        sessions: SessionManager,
        mailer: EmailProvider,
        app_url: str,
    ) -> None:
        self._store = store
        self._authenticator = authenticator
        self._tokens = tokens
        self._sessions = sessions
        self._mailer = mailer
        self._app_url = app_url.rstrip("/")

    def verification_link(self, token: str) -> str:
        return f"{self._app_url}/verify-email/{token}"

    def reset_link(self, token: str) -> str:
        return f"{self._app_url}/reset-password/{token}"

    async def _send_verification(self, user: UserDoc, token: str) -> None:
        sent = await self._mailer.send_verification_email(
            user.email, self.verification_link(token)
        )
        if not sent:
            # The stored token stays valid; a resend overwrites it
            log.error("verification_email_failed", user_id=user.user_id)
            raise EmailDeliveryError("Failed to send verification email")

    async def register(self, data: RegisterRequest) -> UserDoc:
        if await self._store.find_by_email(data.email):
            log.warning("registration_failed", reason="email_exists")
            raise ConflictError("email already registered", field="email")

        issued = self._tokens.new_verification_token()
        user = await self._store.create(
            UserDoc(
                email=data.email,
                password_hash=hash_password(data.password),
                name=data.name,
                surname=data.surname,
                is_verified=False,
                verification_token=issued.token_hash,
            )
        )
        log.info("user_registered", user_id=user.user_id)

        await self._send_verification(user, issued.token)
        return user

    async def resend_verification(self, email: str) -> str:
        user = await self._store.find_by_email(email)
        if user is not None and not user.is_verified:
            issued = await self._tokens.reissue_verification_token(user)
            await self._send_verification(user, issued.token)
        return RESEND_VERIFICATION_MESSAGE

    async def verify_email(self, token: str) -> UserDoc:
        return await self._tokens.consume_verification_token(token)

    async def login(
        self, data: LoginRequest, response: Response
    ) -> tuple[SessionTokens, UserDoc]:
        result = await self._authenticator.authenticate(data.email, data.password)

        if isinstance(result, AccountLocked):
            raise AccountLockedError(result.message, details={"minutes": result.minutes})
        if not isinstance(result, AuthOk):
            raise AuthenticationError(result.message)

        user = await self._store.find_by_id(result.user_id)
        if user is None:
            raise AuthenticationError("Invalid credentials")
        if not user.is_verified:
            log.info("login_rejected", reason="email_not_verified", user_id=user.user_id)
            raise ForbiddenError(UNVERIFIED_MESSAGE)

        tokens = await self._sessions.create_session(user.user_id, response)
        log.info("login_success", user_id=user.user_id)
        return tokens, user

    async def logout(self, request: Request, response: Response) -> None:
        await self._sessions.destroy_session(request, response)

    async def forgot_password(self, email: str) -> str:
        """Start a reset. The return value never depends on whether *email* exists."""
        user: Optional[UserDoc] = await self._store.find_by_email(email)
        if user is not None:
            issued = await self._tokens.issue_reset_token(user)
            sent = await self._mailer.send_password_reset_email(
                user.email, self.reset_link(issued.token)
            )
            if not sent:
                log.error("reset_email_failed", user_id=user.user_id)
                raise EmailDeliveryError("Failed to send password reset email")
        else:
            log.info("password_reset_requested", matched=False)
        return FORGOT_PASSWORD_MESSAGE

    async def check_reset_link(self, token: str) -> None:
        await self._tokens.check_reset_token(token)

    async def reset_password(self, token: str, new_password: str) -> UserDoc:
        return await self._tokens.reset_password(token, new_password)
