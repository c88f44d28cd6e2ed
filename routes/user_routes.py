"""
User-admin endpoints. Every route requires a session; mutations also require
the anti-forgery token.

GET    /users?filter=...  → matching users + csrf token
PATCH  /users/{user_id}   → edited profile
DELETE /users/{user_id}   → 204
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response

from dependencies import (
    current_user,
    get_csrf,
    get_user_service,
    request_body,
    require_csrf,
)
from schemas.dto.requests.users import EditUserRequest, UserListQuery
from schemas.dto.responses.auth import UserProfileResponse
from schemas.dto.responses.common import ErrorResponse
from schemas.dto.responses.users import UserListResponse
from schemas.models.user import UserDoc
from services.csrf import CsrfTokenBinder
from services.user_service import UserService

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


@router.get("", response_model=UserListResponse)
async def list_users(
    request: Request,
    response: Response,
    query: Annotated[UserListQuery, Query()],
    user: UserDoc = Depends(current_user),
    user_service: UserService = Depends(get_user_service),
    csrf: CsrfTokenBinder = Depends(get_csrf),
) -> UserListResponse:
    users = await user_service.list_users(query.filter)
    return UserListResponse(
        users=[UserProfileResponse.from_doc(u) for u in users],
        total=len(users),
        filter=query.filter,
        csrf_token=csrf.commit_token(request, response),
    )


@router.patch(
    "/{user_id}",
    response_model=UserProfileResponse,
    dependencies=[Depends(require_csrf)],
)
async def edit_user(
    user_id: str,
    user: UserDoc = Depends(current_user),
    body: EditUserRequest = Depends(request_body(EditUserRequest)),
    user_service: UserService = Depends(get_user_service),
) -> UserProfileResponse:
    edited = await user_service.edit_user(user_id, body, actor_id=user.user_id)
    return UserProfileResponse.from_doc(edited)


@router.delete(
    "/{user_id}",
    status_code=204,
    dependencies=[Depends(require_csrf)],
)
async def delete_user(
    user_id: str,
    user: UserDoc = Depends(current_user),
    user_service: UserService = Depends(get_user_service),
) -> None:
    await user_service.delete_user(user_id, actor_id=user.user_id)
