"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Services are built once in the app lifespan and
stored on app.state; these providers only look them up.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Coroutine, TypeVar

from fastapi import Depends, Request, Response
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from schemas.models.user import UserDoc
from services.auth_service import AuthService
from services.csrf import FORM_CONTENT_TYPES, CsrfTokenBinder
from services.lockout import LockoutGuard
from services.session_manager import SessionManager
from services.user_service import UserService
from shared.logging import get_logger, log_with_context

log = get_logger(__name__)

BodyT = TypeVar("BodyT", bound=BaseModel)


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_csrf(request: Request) -> CsrfTokenBinder:
    return request.app.state.csrf


def get_lockout(request: Request) -> LockoutGuard:
    return request.app.state.lockout


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


async def require_csrf(
    request: Request, csrf: CsrfTokenBinder = Depends(get_csrf)
) -> None:
    """Reject the request with 403 unless it carries the session's CSRF token.

    Declared in the route decorator's ``dependencies`` so it runs before any
    dependency that touches the user store.
    """
    csrf.validate(request, await csrf.submitted_token(request))


async def current_user_id(
    request: Request,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
) -> str:
    """Caller's user id; a refreshed access token is set on the outgoing response."""
    return await sessions.authenticate_request(request, response)


async def current_user(
    request: Request,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
) -> UserDoc:
    user = await sessions.require_user(request, response)
    log_with_context(log, user_id=user.user_id).debug(
        "request_authenticated", path=request.url.path
    )
    return user


def request_body(
    model: type[BodyT],
) -> Callable[[Request], Coroutine[Any, Any, BodyT]]:
    """Dependency parsing *model* from a JSON body or an HTML form post.

    Validation failures surface as RequestValidationError so they render
    like any other malformed request (400 with field details).
    """

    async def parse(request: Request) -> BodyT:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith(FORM_CONTENT_TYPES):
            data: Any = dict(await request.form())
        else:
            try:
                data = await request.json()
            except (json.JSONDecodeError, UnicodeDecodeError):
                raise RequestValidationError(
                    [{"type": "json_invalid", "loc": ("body",), "msg": "Invalid JSON body"}]
                )
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise RequestValidationError(e.errors(include_url=False), body=data)

    return parse
