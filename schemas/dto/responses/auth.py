"""
Response DTOs for authentication endpoints.

UserProfileResponse: public view of a user record
CsrfTokenResponse: page-load endpoints that hand out an anti-forgery token
LoginResponse: POST /auth/login  (200)
RegisterResponse: POST /auth/register  (201)
RefreshResponse: POST /auth/refresh  (200)
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.user import UserDoc


class UserProfileResponse(BaseModel):
    """User profile shape returned by login, /auth/me and the admin listing."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    name: str
    surname: str
    is_verified: bool

    @classmethod
    def from_doc(cls, user: UserDoc) -> "UserProfileResponse":
        return cls(
            id=str(user.id),
            email=user.email,
            name=user.name,
            surname=user.surname,
            is_verified=user.is_verified,
        )


class CsrfTokenResponse(BaseModel):
    """Anti-forgery token to echo back on the next mutating request."""

    model_config = ConfigDict(populate_by_name=True)

    csrf_token: str


class LoginResponse(BaseModel):
    """Response body for POST /auth/login (200)."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str
    user: UserProfileResponse


class RegisterResponse(BaseModel):
    """Response body for POST /auth/register (201)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    user: Optional[UserProfileResponse] = None


class RefreshResponse(BaseModel):
    """Response body for POST /auth/refresh (200)."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str
