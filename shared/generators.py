"""
Random token generators: pure, side-effect-free functions.

All generators use the ``secrets`` module.
"""

from __future__ import annotations

import secrets


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure URL-safe random token.

    Args:
        length: Number of random bytes before base64 encoding (default 32,
            i.e. 256 bits of entropy). The resulting string is longer than
            *length* characters and safe to embed in a URL path segment.

    Returns:
        URL-safe base64-encoded token string.
    """
    return secrets.token_urlsafe(length)
