"""
Anti-forgery tokens bound to a dedicated signed cookie.

Page-load endpoints call ``commit_token`` and hand the token to the client;
every state-changing request must echo it back (``X-CSRF-Token`` header,
``csrf`` form field or ``csrf`` JSON key) and passes ``validate`` before any
data is read or written.
"""

from __future__ import annotations

import json
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from errors import CsrfError
from infrastructure.cookies import CookieStore
from shared.crypto import constant_time_equals
from shared.generators import generate_secure_token
from shared.logging import get_logger

log = get_logger(__name__)

CSRF_HEADER = "X-CSRF-Token"
CSRF_FIELD = "csrf"
CSRF_TOKEN_KEY = "csrf"
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


class CsrfTokenBinder:
    def __init__(self, cookies: CookieStore) -> None:
        self._cookies = cookies

    def bound_token(self, request: Request) -> Optional[str]:
        return self._cookies.load(request).get(CSRF_TOKEN_KEY)

    def commit_token(self, request: Request, response: Response) -> str:
        """Return the session's token (minting one if needed) and persist it on *response*."""
        token = self.bound_token(request) or generate_secure_token()
        self._cookies.commit(response, {CSRF_TOKEN_KEY: token})
        return token

    async def submitted_token(self, request: Request) -> Optional[str]:
        header = request.headers.get(CSRF_HEADER)
        if header:
            return header

        content_type = request.headers.get("content-type", "")
        if content_type.startswith(FORM_CONTENT_TYPES):
            value = (await request.form()).get(CSRF_FIELD)
            return value if isinstance(value, str) else None
        if content_type.startswith("application/json"):
            try:
                body = await request.json()
            except (json.JSONDecodeError, UnicodeDecodeError):
                return None
            if isinstance(body, dict) and isinstance(body.get(CSRF_FIELD), str):
                return body[CSRF_FIELD]
        return None

    def validate(self, request: Request, submitted: Optional[str]) -> None:
        """Raise CsrfError unless *submitted* exactly matches the bound token."""
        if not constant_time_equals(submitted, self.bound_token(request)):
            log.warning("csrf_validation_failed", path=request.url.path)
            raise CsrfError("Invalid CSRF token")
