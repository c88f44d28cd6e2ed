"""
Authentication endpoints.

Page-load (GET) endpoints hand out the anti-forgery token; every POST is
guarded by ``require_csrf``, which runs before the body is used. Bodies are
accepted as JSON or as an HTML form post.

GET  /auth/login               → csrf token (expired locks swept first)
POST /auth/login               → session cookie + access token
GET  /auth/register            → csrf token
POST /auth/register            → unverified user, verification mail
POST /auth/resend-verification → generic message
POST /auth/logout              → session destroyed
POST /auth/refresh             → fresh access token
GET  /auth/me                  → current user profile
GET  /verify-email/{token}     → marks the account verified
GET  /auth/forgot-password     → csrf token
POST /auth/forgot-password     → generic message
GET  /reset-password/{token}   → csrf token if the link is valid
POST /reset-password/{token}   → new password stored
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from dependencies import (
    current_user,
    current_user_id,
    get_auth_service,
    get_csrf,
    get_lockout,
    get_session_manager,
    request_body,
    require_csrf,
)
from schemas.dto.requests.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
)
from schemas.dto.responses.auth import (
    CsrfTokenResponse,
    LoginResponse,
    RefreshResponse,
    RegisterResponse,
    UserProfileResponse,
)
from schemas.dto.responses.common import ErrorResponse, MessageResponse
from schemas.models.user import UserDoc
from services.auth_service import REGISTERED_MESSAGE, AuthService
from services.csrf import CsrfTokenBinder
from services.lockout import LockoutGuard
from services.session_manager import SessionManager
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(
    tags=["auth"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        423: {"model": ErrorResponse},
    },
)


@router.get("/auth/login", response_model=CsrfTokenResponse)
async def login_page(
    request: Request,
    response: Response,
    lockout: LockoutGuard = Depends(get_lockout),
    csrf: CsrfTokenBinder = Depends(get_csrf),
) -> CsrfTokenResponse:
    """Release every lock whose deadline has passed, then issue a CSRF token."""
    await lockout.sweep_expired_locks()
    return CsrfTokenResponse(csrf_token=csrf.commit_token(request, response))


@router.post(
    "/auth/login",
    response_model=LoginResponse,
    dependencies=[Depends(require_csrf)],
)
async def login(
    response: Response,
    body: LoginRequest = Depends(request_body(LoginRequest)),
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    tokens, user = await auth_service.login(body, response)
    return LoginResponse(
        access_token=tokens.access_token,
        user=UserProfileResponse.from_doc(user),
    )


@router.get("/auth/register", response_model=CsrfTokenResponse)
async def register_page(
    request: Request,
    response: Response,
    csrf: CsrfTokenBinder = Depends(get_csrf),
) -> CsrfTokenResponse:
    return CsrfTokenResponse(csrf_token=csrf.commit_token(request, response))


@router.post(
    "/auth/register",
    response_model=RegisterResponse,
    status_code=201,
    dependencies=[Depends(require_csrf)],
)
async def register(
    body: RegisterRequest = Depends(request_body(RegisterRequest)),
    auth_service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """Create an unverified account and mail the verification link.

    No session is created; the user must verify before logging in.
    """
    user = await auth_service.register(body)
    return RegisterResponse(
        success=True,
        message=REGISTERED_MESSAGE,
        user=UserProfileResponse.from_doc(user),
    )


@router.post(
    "/auth/resend-verification",
    response_model=MessageResponse,
    dependencies=[Depends(require_csrf)],
)
async def resend_verification(
    body: ResendVerificationRequest = Depends(request_body(ResendVerificationRequest)),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    message = await auth_service.resend_verification(body.email)
    return MessageResponse(success=True, message=message)


@router.post(
    "/auth/logout",
    response_model=MessageResponse,
    dependencies=[Depends(require_csrf)],
)
async def logout(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.logout(request, response)
    return MessageResponse(success=True, message="Logged out")


@router.post("/auth/refresh", response_model=RefreshResponse)
async def refresh(
    response: Response,
    user_id: str = Depends(current_user_id),
    sessions: SessionManager = Depends(get_session_manager),
) -> RefreshResponse:
    """Return a fresh access token and write it to the session cookie.

    A lapsed token has to pass the stored refresh token check in
    ``current_user_id`` first. The refresh token itself is never rotated here.
    """
    return RefreshResponse(access_token=sessions.reissue_access_token(user_id, response))


@router.get("/auth/me", response_model=UserProfileResponse)
async def me(user: UserDoc = Depends(current_user)) -> UserProfileResponse:
    return UserProfileResponse.from_doc(user)


@router.get("/verify-email/{token}", response_model=MessageResponse)
async def verify_email(
    token: str,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.verify_email(token)
    return MessageResponse(success=True, message="Email verified. You can now log in.")


@router.get("/auth/forgot-password", response_model=CsrfTokenResponse)
async def forgot_password_page(
    request: Request,
    response: Response,
    csrf: CsrfTokenBinder = Depends(get_csrf),
) -> CsrfTokenResponse:
    return CsrfTokenResponse(csrf_token=csrf.commit_token(request, response))


@router.post(
    "/auth/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(require_csrf)],
)
async def forgot_password(
    body: ForgotPasswordRequest = Depends(request_body(ForgotPasswordRequest)),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    message = await auth_service.forgot_password(body.email)
    return MessageResponse(success=True, message=message)


@router.get("/reset-password/{token}", response_model=CsrfTokenResponse)
async def reset_password_page(
    token: str,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    csrf: CsrfTokenBinder = Depends(get_csrf),
) -> CsrfTokenResponse:
    await auth_service.check_reset_link(token)
    return CsrfTokenResponse(csrf_token=csrf.commit_token(request, response))


@router.post(
    "/reset-password/{token}",
    response_model=MessageResponse,
    dependencies=[Depends(require_csrf)],
)
async def reset_password(
    token: str,
    body: ResetPasswordRequest = Depends(request_body(ResetPasswordRequest)),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.reset_password(token, body.password)
    return MessageResponse(success=True, message="Password has been reset. You can now log in.")
