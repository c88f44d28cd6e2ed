"""
Response DTOs for the user-admin endpoints.

UserListResponse: GET /users
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from schemas.dto.responses.auth import UserProfileResponse


class UserListResponse(BaseModel):
    """Response body for GET /users (200)."""

    model_config = ConfigDict(populate_by_name=True)

    users: list[UserProfileResponse]
    total: int
    filter: str
    csrf_token: str
