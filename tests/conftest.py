"""
Shared fixtures: in-memory user store, controllable clock, recording mailer
and a fully wired app backed by them. No network or database is touched.
"""

import pytest
from fastapi.testclient import TestClient

from config import (
    AppSettings,
    AuthPolicySettings,
    DatabaseSettings,
    EmailSettings,
    JWTSettings,
    SessionSettings,
)
from tests.fakes import (
    ACCESS_SECRET,
    CSRF_SECRET,
    REFRESH_SECRET,
    SESSION_SECRET,
    FakeClock,
    InMemoryUserStore,
    RecordingMailer,
    make_user,
)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryUserStore()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def settings():
    return AppSettings(
        env="test",
        app_url="http://testserver",
        docs_url=None,
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        jwt=JWTSettings(
            access_token_secret=ACCESS_SECRET,
            refresh_token_secret=REFRESH_SECRET,
        ),
        session=SessionSettings(
            session_secret=SESSION_SECRET,
            csrf_secret=CSRF_SECRET,
            cookie_secure=False,
        ),
        auth_policy=AuthPolicySettings(),
        email=EmailSettings(zepto_api_token=""),
    )


@pytest.fixture
def user(store):
    """A verified user whose password is PASSWORD."""
    return store.add(make_user())


@pytest.fixture
def client(settings, store, mailer, clock):
    from app import create_app

    app = create_app(settings, user_store=store, mailer=mailer, clock=clock)
    with TestClient(app) as c:
        yield c
