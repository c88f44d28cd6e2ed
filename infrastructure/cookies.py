"""Signed cookie-backed key/value store.

Each instance owns one cookie (name + secret + flags). The payload is a small
JSON dict signed with itsdangerous; a tampered, foreign or stale cookie reads
back as an empty dict. The session and CSRF stores are two independent
instances, so either can be read, rewritten or destroyed without the other.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from itsdangerous import BadData, URLSafeTimedSerializer
from starlette.requests import Request
from starlette.responses import Response


@dataclass(frozen=True)
class CookieOptions:
    name: str
    secret: str
    max_age: Optional[int] = None
    secure: bool = True
    samesite: str = "lax"
    path: str = "/"
    httponly: bool = True


class CookieStore:
    def __init__(self, options: CookieOptions) -> None:
        self._options = options
        self._serializer = URLSafeTimedSerializer(options.secret, salt=options.name)

    @property
    def name(self) -> str:
        return self._options.name

    def load(self, request: Request) -> dict:
        raw = request.cookies.get(self._options.name)
        if not raw:
            return {}
        try:
            data = self._serializer.loads(raw, max_age=self._options.max_age)
        except BadData:
            return {}
        return data if isinstance(data, dict) else {}

    def commit(self, response: Response, data: dict) -> None:
        response.set_cookie(
            self._options.name,
            value=self._serializer.dumps(data),
            max_age=self._options.max_age,
            path=self._options.path,
            secure=self._options.secure,
            httponly=self._options.httponly,
            samesite=self._options.samesite,
        )

    def destroy(self, response: Response) -> None:
        response.delete_cookie(
            self._options.name,
            path=self._options.path,
            secure=self._options.secure,
            httponly=self._options.httponly,
            samesite=self._options.samesite,
        )
