"""ZeptoMail implementation of EmailProvider.

Sends over the shared async HttpClient; bodies are rendered from the Jinja2
templates in templates/emails. A send never raises: failures are logged and
reported as ``False`` so the caller decides how to surface them.
"""

import os
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.com/v1.1/email"
_AUTH_SCHEME = "Zoho-enczapikey "
_ACCEPTED_STATUSES = (200, 201, 202)
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)

VERIFICATION_TEXT = "Please open the link below to verify your email address:\n\n{link}\n"
RESET_TEXT = (
    "You requested a password reset. Open the link below to choose a new "
    "password:\n\n{link}\n\n"
    "The link is only valid for a limited time. If you didn't request this, "
    "please ignore this email."
)


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        app_name: str = "usergate",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_name = app_name
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    @property
    def _authorization(self) -> str:
        api_key = self._settings.zepto_api_token
        return api_key if api_key.startswith(_AUTH_SCHEME) else f"{_AUTH_SCHEME}{api_key}"

    def _payload(
        self, to_email: str, subject: str, html_body: str, text_body: Optional[str]
    ) -> dict:
        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [{"email_address": {"address": to_email, "name": to_email}}],
            "subject": subject,
            "htmlbody": html_body,
        }
        if text_body:
            payload["textbody"] = text_body
        return payload

    def _render(self, template: str, link: str) -> str:
        return self._jinja.get_template(template).render(link=link, app_name=self._app_name)

    async def _send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("email_send_failed", reason="token_not_configured")
            return False

        try:
            response = await self._http.post(
                _ZEPTO_API_URL,
                json=self._payload(to_email, subject, html_body, text_body),
                headers={
                    "Authorization": self._authorization,
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code not in _ACCEPTED_STATUSES:
            log.error(
                "email_send_failed",
                to_email=to_email,
                subject=subject,
                status_code=response.status_code,
                response=response.text[:200],
            )
            return False

        log.info("email_sent", to_email=to_email, subject=subject)
        return True

    async def send_verification_email(self, email: str, link: str) -> bool:
        return await self._send(
            email,
            "Verify your email address",
            self._render("verification.html", link),
            VERIFICATION_TEXT.format(link=link),
        )

    async def send_password_reset_email(self, email: str, link: str) -> bool:
        return await self._send(
            email,
            "Reset your password",
            self._render("password_reset.html", link),
            RESET_TEXT.format(link=link),
        )
