"""Unit tests for CookieStore, SessionManager and CsrfTokenBinder."""

import json
from datetime import timedelta

import pytest
from starlette.responses import Response

from config import JWTSettings
from errors import AuthorizationError, CsrfError
from infrastructure.cookies import CookieOptions, CookieStore
from services.csrf import CSRF_HEADER, CsrfTokenBinder
from services.session_manager import ACCESS_TOKEN_KEY, SessionManager
from services.token_codec import TokenCodec
from tests.fakes import (
    ACCESS_SECRET,
    CSRF_SECRET,
    REFRESH_SECRET,
    SESSION_SECRET,
    cookie_value,
    make_request,
    set_cookie_headers,
)

REFRESH_TTL = 604800


@pytest.fixture
def session_cookies():
    return CookieStore(
        CookieOptions(name="__session", secret=SESSION_SECRET, max_age=REFRESH_TTL, secure=False)
    )


@pytest.fixture
def csrf_cookies():
    return CookieStore(CookieOptions(name="__csrf", secret=CSRF_SECRET, secure=False))


@pytest.fixture
def codec(clock):
    return TokenCodec(
        JWTSettings(access_token_secret=ACCESS_SECRET, refresh_token_secret=REFRESH_SECRET),
        clock=clock,
    )


@pytest.fixture
def sessions(store, codec, session_cookies, clock):
    return SessionManager(store, codec, session_cookies, refresh_ttl_seconds=REFRESH_TTL, clock=clock)


# ── CookieStore ──────────────────────────────────────────────────────────────


class TestCookieStore:
    def test_commit_then_load(self, session_cookies):
        response = Response()
        session_cookies.commit(response, {"k": "v"})
        value = cookie_value(response, "__session")
        assert session_cookies.load(make_request({"__session": value})) == {"k": "v"}

    def test_flags(self):
        store = CookieStore(CookieOptions(name="__session", secret=SESSION_SECRET, max_age=60))
        response = Response()
        store.commit(response, {"k": "v"})
        header = set_cookie_headers(response)["__session"].lower()
        assert "httponly" in header
        assert "secure" in header
        assert "samesite=lax" in header
        assert "max-age=60" in header

    def test_missing_cookie(self, session_cookies):
        assert session_cookies.load(make_request()) == {}

    def test_tampered_cookie(self, session_cookies):
        response = Response()
        session_cookies.commit(response, {"k": "v"})
        value = cookie_value(response, "__session")
        assert session_cookies.load(make_request({"__session": value[:-2] + "xx"})) == {}

    def test_cookie_from_other_store_rejected(self, session_cookies, csrf_cookies):
        response = Response()
        csrf_cookies.commit(response, {"k": "v"})
        value = cookie_value(response, "__csrf")
        assert session_cookies.load(make_request({"__session": value})) == {}

    def test_destroy_expires_cookie(self, session_cookies):
        response = Response()
        session_cookies.destroy(response)
        assert "max-age=0" in set_cookie_headers(response)["__session"].lower()


# ── SessionManager ───────────────────────────────────────────────────────────


class TestSessionManager:
    async def test_create_session_stores_refresh_and_sets_cookie(
        self, store, clock, user, sessions, codec, session_cookies
    ):
        response = Response()
        tokens = await sessions.create_session(user.user_id, response)
        stored = store.get(user.user_id)
        assert stored.refresh_token == tokens.refresh_token
        assert stored.refresh_token_expires == clock() + timedelta(seconds=REFRESH_TTL)

        cookie = cookie_value(response, "__session")
        data = session_cookies.load(make_request({"__session": cookie}))
        # Only the access token travels to the client
        assert data == {ACCESS_TOKEN_KEY: tokens.access_token}
        assert codec.verify_access_token(tokens.access_token) == user.user_id

    async def test_valid_access_token_identifies(self, user, sessions):
        login = Response()
        await sessions.create_session(user.user_id, login)
        request = make_request({"__session": cookie_value(login, "__session")})
        response = Response()
        assert await sessions.authenticate_request(request, response) == user.user_id
        assert "__session" not in set_cookie_headers(response)

    async def test_expired_access_token_refreshes(self, clock, user, sessions, codec):
        login = Response()
        await sessions.create_session(user.user_id, login)
        clock.advance(minutes=16)

        request = make_request({"__session": cookie_value(login, "__session")})
        response = Response()
        assert await sessions.authenticate_request(request, response) == user.user_id

        refreshed = cookie_value(response, "__session")
        new_request = make_request({"__session": refreshed})
        assert sessions.resolve_identity(new_request) == user.user_id

    async def test_expired_refresh_is_unauthorized(self, clock, user, sessions):
        login = Response()
        await sessions.create_session(user.user_id, login)
        clock.advance(days=7, seconds=1)
        request = make_request({"__session": cookie_value(login, "__session")})
        with pytest.raises(AuthorizationError, match="Unauthorized"):
            await sessions.authenticate_request(request, Response())

    async def test_cleared_refresh_is_unauthorized(self, store, clock, user, sessions):
        login = Response()
        await sessions.create_session(user.user_id, login)
        await store.update_fields(user.user_id, {"refresh_token": None})
        clock.advance(minutes=16)
        request = make_request({"__session": cookie_value(login, "__session")})
        with pytest.raises(AuthorizationError):
            await sessions.authenticate_request(request, Response())

    async def test_stored_expiry_passed_while_token_exp_valid_rejected(
        self, store, clock, user, sessions, codec
    ):
        login = Response()
        await sessions.create_session(user.user_id, login)
        await store.update_fields(
            user.user_id, {"refresh_token_expires": clock() + timedelta(minutes=1)}
        )
        clock.advance(minutes=16)

        # The refresh JWT itself is still inside its 7-day exp
        stored = store.get(user.user_id).refresh_token
        assert codec.verify_refresh_token(stored) == user.user_id

        request = make_request({"__session": cookie_value(login, "__session")})
        with pytest.raises(AuthorizationError):
            await sessions.authenticate_request(request, Response())
        assert await sessions.refresh(user.user_id) is None

    async def test_stored_expiry_ahead_of_token_exp_still_rejected(
        self, store, clock, user, sessions
    ):
        login = Response()
        await sessions.create_session(user.user_id, login)
        await store.update_fields(
            user.user_id, {"refresh_token_expires": clock() + timedelta(days=30)}
        )
        clock.advance(days=8)
        request = make_request({"__session": cookie_value(login, "__session")})
        with pytest.raises(AuthorizationError):
            await sessions.authenticate_request(request, Response())

    async def test_refresh_token_of_other_user_rejected(
        self, store, clock, user, sessions, codec
    ):
        await store.update_fields(
            user.user_id,
            {
                "refresh_token": codec.issue_refresh_token("507f1f77bcf86cd799439099"),
                "refresh_token_expires": clock() + timedelta(days=1),
            },
        )
        assert await sessions.refresh(user.user_id) is None

    async def test_no_cookie(self, sessions):
        with pytest.raises(AuthorizationError):
            await sessions.authenticate_request(make_request(), Response())

    async def test_require_user_missing_record(self, store, user, sessions):
        login = Response()
        await sessions.create_session(user.user_id, login)
        await store.delete(user.user_id)
        request = make_request({"__session": cookie_value(login, "__session")})
        with pytest.raises(AuthorizationError):
            await sessions.require_user(request, Response())

    async def test_reissue_leaves_refresh_token(self, store, user, sessions):
        await sessions.create_session(user.user_id, Response())
        before = store.get(user.user_id).refresh_token
        response = Response()
        token = sessions.reissue_access_token(user.user_id, response)
        assert token
        assert store.get(user.user_id).refresh_token == before
        assert "__session" in set_cookie_headers(response)

    async def test_destroy_clears_refresh_and_cookie(self, store, clock, user, sessions):
        login = Response()
        await sessions.create_session(user.user_id, login)
        clock.advance(hours=1)
        request = make_request({"__session": cookie_value(login, "__session")})
        response = Response()
        await sessions.destroy_session(request, response)
        stored = store.get(user.user_id)
        assert stored.refresh_token is None
        assert stored.refresh_token_expires is None
        assert "max-age=0" in set_cookie_headers(response)["__session"].lower()

    async def test_destroy_without_session(self, sessions):
        response = Response()
        await sessions.destroy_session(make_request(), response)
        assert "__session" in set_cookie_headers(response)


# ── CsrfTokenBinder ──────────────────────────────────────────────────────────


class TestCsrfTokenBinder:
    def _committed(self, binder):
        response = Response()
        token = binder.commit_token(make_request(method="GET"), response)
        return token, cookie_value(response, "__csrf")

    def test_commit_mints_and_reuses(self, csrf_cookies):
        binder = CsrfTokenBinder(csrf_cookies)
        token, cookie = self._committed(binder)
        again = binder.commit_token(make_request({"__csrf": cookie}, method="GET"), Response())
        assert again == token

    async def test_header_token_accepted(self, csrf_cookies):
        binder = CsrfTokenBinder(csrf_cookies)
        token, cookie = self._committed(binder)
        request = make_request({"__csrf": cookie}, headers={CSRF_HEADER: token})
        binder.validate(request, await binder.submitted_token(request))

    async def test_form_field_accepted(self, csrf_cookies):
        binder = CsrfTokenBinder(csrf_cookies)
        token, cookie = self._committed(binder)
        request = make_request(
            {"__csrf": cookie},
            headers={"content-type": "application/x-www-form-urlencoded"},
            body=f"csrf={token}&email=a%40b.com".encode(),
        )
        assert await binder.submitted_token(request) == token

    async def test_json_key_accepted(self, csrf_cookies):
        binder = CsrfTokenBinder(csrf_cookies)
        token, cookie = self._committed(binder)
        request = make_request(
            {"__csrf": cookie},
            headers={"content-type": "application/json"},
            body=json.dumps({"csrf": token, "email": "a@b.com"}).encode(),
        )
        assert await binder.submitted_token(request) == token

    async def test_invalid_json_yields_none(self, csrf_cookies):
        binder = CsrfTokenBinder(csrf_cookies)
        request = make_request(headers={"content-type": "application/json"}, body=b"{nope")
        assert await binder.submitted_token(request) is None

    async def test_wrong_token_rejected(self, csrf_cookies):
        binder = CsrfTokenBinder(csrf_cookies)
        _, cookie = self._committed(binder)
        request = make_request({"__csrf": cookie}, headers={CSRF_HEADER: "forged"})
        with pytest.raises(CsrfError, match="Invalid CSRF token"):
            binder.validate(request, await binder.submitted_token(request))

    async def test_missing_token_rejected(self, csrf_cookies):
        binder = CsrfTokenBinder(csrf_cookies)
        _, cookie = self._committed(binder)
        with pytest.raises(CsrfError):
            binder.validate(make_request({"__csrf": cookie}), None)

    async def test_token_without_cookie_rejected(self, csrf_cookies):
        binder = CsrfTokenBinder(csrf_cookies)
        token, _ = self._committed(binder)
        with pytest.raises(CsrfError):
            binder.validate(make_request(), token)
