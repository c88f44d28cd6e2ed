"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.cookies import CookieOptions, CookieStore
from infrastructure.email.protocol import EmailProvider
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from repositories.protocol import UserStore
from repositories.user_repository import UserRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from routes.user_routes import router as user_router
from services.auth_service import AuthService
from services.authenticator import CredentialAuthenticator
from services.csrf import CsrfTokenBinder
from services.lockout import LockoutGuard
from services.one_time_tokens import OneTimeTokenService
from services.session_manager import SessionManager
from services.token_codec import TokenCodec
from services.user_service import UserService
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def build_services(
    app: FastAPI,
    settings: AppSettings,
    store: UserStore,
    mailer: EmailProvider,
    clock: Clock = utcnow,
) -> None:
    """Wire the auth core onto app.state. Each collaborator gets its config explicitly."""
    session_cfg = settings.session

    session_cookies = CookieStore(
        CookieOptions(
            name=session_cfg.session_cookie_name,
            secret=session_cfg.session_secret,
            # Outlives the access token so a lapsed session can still be refreshed
            max_age=settings.jwt.refresh_token_ttl_seconds,
            secure=session_cfg.cookie_secure,
            samesite=session_cfg.cookie_samesite,
        )
    )
    csrf_cookies = CookieStore(
        CookieOptions(
            name=session_cfg.csrf_cookie_name,
            secret=session_cfg.csrf_secret,
            secure=session_cfg.cookie_secure,
            samesite=session_cfg.cookie_samesite,
        )
    )

    codec = TokenCodec(settings.jwt, clock=clock)
    lockout = LockoutGuard(store, settings.auth_policy, clock=clock)
    tokens = OneTimeTokenService(store, settings.auth_policy, clock=clock)
    sessions = SessionManager(
        store,
        codec,
        session_cookies,
        refresh_ttl_seconds=settings.jwt.refresh_token_ttl_seconds,
        clock=clock,
    )

    app.state.settings = settings
    app.state.users = store
    app.state.mailer = mailer
    app.state.lockout = lockout
    app.state.sessions = sessions
    app.state.csrf = CsrfTokenBinder(csrf_cookies)
    app.state.auth_service = AuthService(
        store,
        CredentialAuthenticator(store, lockout),
        tokens,
        sessions,
        mailer,
        app_url=settings.app_url,
    )
    app.state.user_service = UserService(store)


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    user_store: Optional[UserStore] = None,
    mailer: Optional[EmailProvider] = None,
    clock: Clock = utcnow,
) -> FastAPI:
    """Create and return a fully configured FastAPI application.

    ``user_store`` / ``mailer`` replace the MongoDB repository and the
    ZeptoMail provider (tests, local tooling); ``clock`` drives every expiry.
    """
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging.log_level, settings.logging.log_format, env=settings.env)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: Optional[AsyncMongoClient] = None
        http_client: Optional[HttpClient] = None

        store = user_store
        if store is None:
            mongo_client = AsyncMongoClient(settings.db.mongodb_uri, tz_aware=True)
            db = mongo_client[settings.db.db_name]
            repository = UserRepository(db["users"])
            await repository.ensure_indexes()
            store = repository
            app.state.db = db
        else:
            app.state.db = None

        email_provider = mailer
        if email_provider is None:
            http_client = HttpClient(timeout=10.0)
            email_provider = ZeptoMailProvider(
                settings.email, http_client, app_name=settings.app_name
            )

        build_services(app, settings, store, email_provider, clock=clock)
        log.info("app_started", env=settings.env)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        if http_client is not None:
            await http_client.aclose()
        if mongo_client is not None:
            await mongo_client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(user_router)

    return app
