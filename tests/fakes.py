"""In-memory fakes for the user store, clock and mailer, shared by all tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from bson import ObjectId
from starlette.requests import Request
from starlette.responses import Response

from errors import ConflictError
from schemas.models.user import UserDoc
from shared.crypto import hash_password
from shared.datetime_utils import ensure_utc

ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"
SESSION_SECRET = "session-secret-for-tests-0123456789abcdef"
CSRF_SECRET = "csrf-secret-for-tests-0123456789abcdef"

PASSWORD = "secret123"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: Optional[datetime] = None) -> None:
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryUserStore:
    """UserStore backed by a dict; hands out copies like a real database would."""

    def __init__(self) -> None:
        self.users: dict[str, UserDoc] = {}

    def _copy(self, user: Optional[UserDoc]) -> Optional[UserDoc]:
        return user.model_copy(deep=True) if user is not None else None

    def _first(self, **match: Any) -> Optional[UserDoc]:
        for user in self.users.values():
            if all(getattr(user, k) == v for k, v in match.items()):
                return self._copy(user)
        return None

    def get(self, user_id: str) -> UserDoc:
        return self.users[user_id]

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        return self._first(email=email.strip().lower())

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        return self._copy(self.users.get(user_id))

    async def find_by_verification_token(self, token_hash: str) -> Optional[UserDoc]:
        return self._first(verification_token=token_hash)

    async def find_by_reset_token(self, token_hash: str) -> Optional[UserDoc]:
        return self._first(reset_password_token=token_hash)

    def add(self, user: UserDoc) -> UserDoc:
        if self._first(email=user.email) is not None:
            raise ConflictError("email already registered", field="email")
        user.id = ObjectId()
        self.users[str(user.id)] = user.model_copy(deep=True)
        return user

    async def create(self, user: UserDoc) -> UserDoc:
        return self.add(user)

    async def update_fields(self, user_id: str, fields: dict[str, Any]) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        email = fields.get("email")
        if email is not None:
            other = self._first(email=email)
            if other is not None and other.user_id != user_id:
                raise ConflictError("email already registered", field="email")
        for key, value in fields.items():
            setattr(user, key, value)
        return True

    async def clear_expired_locks(self, now: datetime) -> int:
        cleared = 0
        for user in self.users.values():
            locked_until = ensure_utc(user.locked_until)
            if locked_until is not None and locked_until < now:
                user.locked_until = None
                user.login_attempts = 0
                cleared += 1
        return cleared

    async def list_users(self, text_filter: str = "", limit: int = 100) -> list[UserDoc]:
        needle = text_filter.lower()
        matched = [
            self._copy(u)
            for u in self.users.values()
            if not needle
            or needle in u.name.lower()
            or needle in u.surname.lower()
            or needle in u.email.lower()
        ]
        return matched[:limit]

    async def delete(self, user_id: str) -> bool:
        return self.users.pop(user_id, None) is not None


class RecordingMailer:
    """EmailProvider that records links instead of sending them."""

    def __init__(self) -> None:
        self.verification: list[tuple[str, str]] = []
        self.reset: list[tuple[str, str]] = []
        self.fail = False

    async def send_verification_email(self, email: str, link: str) -> bool:
        if self.fail:
            return False
        self.verification.append((email, link))
        return True

    async def send_password_reset_email(self, email: str, link: str) -> bool:
        if self.fail:
            return False
        self.reset.append((email, link))
        return True

    @staticmethod
    def token_from(link: str) -> str:
        return link.rsplit("/", 1)[1]


def make_user(**overrides: Any) -> UserDoc:
    base = dict(
        email="ada@example.com",
        password_hash=hash_password(PASSWORD),
        name="Ada",
        surname="Lovelace",
        is_verified=True,
    )
    base.update(overrides)
    return UserDoc(**base)




def make_request(
    cookies: Optional[dict] = None,
    headers: Optional[dict] = None,
    body: bytes = b"",
    method: str = "POST",
) -> Request:
    """Bare starlette Request carrying *cookies*, *headers* and *body*."""
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        cookie = "; ".join(f"{k}={v}" for k, v in cookies.items())
        raw_headers.append((b"cookie", cookie.encode()))
    scope = {
        "type": "http",
        "method": method,
        "path": "/",
        "query_string": b"",
        "headers": raw_headers,
    }
    sent = False

    async def receive():
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


def set_cookie_headers(response: Response) -> dict:
    """Map cookie name → raw Set-Cookie header."""
    return {
        header.split("=", 1)[0]: header
        for header in response.headers.getlist("set-cookie")
    }


def cookie_value(response: Response, name: str) -> str:
    header = set_cookie_headers(response)[name]
    return header.split(";", 1)[0].split("=", 1)[1]
