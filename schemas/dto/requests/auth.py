"""
Request DTOs for authentication endpoints.

RegisterRequest: POST /auth/register
LoginRequest: POST /auth/login
ForgotPasswordRequest: POST /auth/forgot-password
ResendVerificationRequest: POST /auth/resend-verification
ResetPasswordRequest: POST /reset-password/{token}

The anti-forgery token is not part of these bodies; it is read by the
``require_csrf`` dependency (header, form field or ``csrf`` JSON key).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator, model_validator

from shared.validators import normalize_email, validate_name, validate_password


def _check_password(value: str) -> str:
    problems = validate_password(value)
    if problems:
        raise ValueError(problems[0])
    return value


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    surname: str
    email: EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        problems = validate_name(v, "Name")
        if problems:
            raise ValueError(problems[0])
        return v.strip()

    @field_validator("surname")
    @classmethod
    def _surname(cls, v: str) -> str:
        problems = validate_name(v, "Surname")
        if problems:
            raise ValueError(problems[0])
        return v.strip()

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /auth/forgot-password."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email: EmailStr

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)


class ResendVerificationRequest(ForgotPasswordRequest):
    """Request body for POST /auth/resend-verification."""


class ResetPasswordRequest(BaseModel):
    """Request body for POST /reset-password/{token}."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)

    @model_validator(mode="after")
    def _passwords_match(self) -> "ResetPasswordRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self
