"""
Input validators: framework-agnostic, pure functions.

Used by the request DTOs so that malformed input is rejected with
field-level detail before any service code runs.
"""

from __future__ import annotations

from typing import List

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128
MIN_NAME_LENGTH = 2


def validate_password(password: str) -> List[str]:
    """Return the list of unmet password requirements (empty when valid)."""
    if not password:
        return ["Password is required"]

    missing = []
    if len(password) < MIN_PASSWORD_LENGTH:
        missing.append(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if len(password) > MAX_PASSWORD_LENGTH:
        missing.append(f"Password must be at most {MAX_PASSWORD_LENGTH} characters long")
    return missing


def validate_name(value: str, label: str = "Name") -> List[str]:
    """Return the list of unmet requirements for a person's name part."""
    if len(value.strip()) < MIN_NAME_LENGTH:
        return [f"{label} must be at least {MIN_NAME_LENGTH} characters long"]
    return []


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup (case-insensitive compare)."""
    return email.strip().lower()
