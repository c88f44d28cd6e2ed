"""
Request DTOs for the user-admin endpoints.

UserListQuery: GET /users
EditUserRequest: PATCH /users/{user_id}
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator

from shared.validators import normalize_email, validate_name


class UserListQuery(BaseModel):
    """Query parameters for GET /users."""

    model_config = ConfigDict(populate_by_name=True)

    filter: str = Field(default="", max_length=100)


class EditUserRequest(BaseModel):
    """Request body for PATCH /users/{user_id}.

    Only the profile fields can change through the admin screen; credentials
    and verification state have their own flows.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    surname: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("name", "surname")
    @classmethod
    def _name_parts(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        if v is None:
            return v
        problems = validate_name(v, info.field_name.capitalize())
        if problems:
            raise ValueError(problems[0])
        return v.strip()

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v is not None else v

    def to_update(self) -> dict:
        """Fields explicitly provided in the request, ready for the store."""
        return self.model_dump(exclude_none=True)
