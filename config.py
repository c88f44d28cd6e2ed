"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).
Access/refresh tokens and the session/CSRF cookies each take their own secret.
"""

from __future__ import annotations

import secrets
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "usergate"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    access_token_secret: str = ""
    refresh_token_secret: str = ""
    jwt_algorithm: str = "HS256"
    access_token_ttl_seconds: int = 900  # 15 minutes
    refresh_token_ttl_seconds: int = 604800  # 7 days

    @property
    def distinct_secrets(self) -> bool:
        return bool(
            self.access_token_secret
            and self.refresh_token_secret
            and self.access_token_secret != self.refresh_token_secret
        )


class SessionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    session_cookie_name: str = "__session"
    session_secret: str = ""
    csrf_cookie_name: str = "__csrf"
    csrf_secret: str = ""
    cookie_secure: bool = True
    cookie_samesite: str = "lax"


class AuthPolicySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    max_login_attempts: int = 5
    lockout_minutes: int = 15
    reset_token_ttl_seconds: int = 3600  # 1 hour


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@usergate.local"
    zepto_from_name: str = "usergate"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_url: str = "http://localhost:8000"
    app_name: str = "usergate"

    cors_origins: list[str] = ["http://localhost:3000"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    session: Optional[SessionSettings] = None
    auth_policy: Optional[AuthPolicySettings] = None
    email: Optional[EmailSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.session is None:
            self.session = SessionSettings()
        if self.auth_policy is None:
            self.auth_policy = AuthPolicySettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        if self.is_production:
            missing = [
                name
                for name, value in (
                    ("ACCESS_TOKEN_SECRET", self.jwt.access_token_secret),
                    ("REFRESH_TOKEN_SECRET", self.jwt.refresh_token_secret),
                    ("SESSION_SECRET", self.session.session_secret),
                    ("CSRF_SECRET", self.session.csrf_secret),
                )
                if not value
            ]
            if missing:
                raise ValueError(f"missing secrets in production: {', '.join(missing)}")
            if not self.jwt.distinct_secrets:
                raise ValueError("access and refresh token secrets must differ")
        else:
            # Development: per-process random keys, so sessions do not survive a restart
            self.jwt.access_token_secret = self.jwt.access_token_secret or secrets.token_urlsafe(32)
            self.jwt.refresh_token_secret = self.jwt.refresh_token_secret or secrets.token_urlsafe(32)
            self.session.session_secret = self.session.session_secret or secrets.token_urlsafe(32)
            self.session.csrf_secret = self.session.csrf_secret or secrets.token_urlsafe(32)

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
