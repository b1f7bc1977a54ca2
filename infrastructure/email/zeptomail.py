"""ZeptoMail implementation of EmailProvider.

Sends transactional mail through the ZeptoMail HTTP API using a shared
httpx.AsyncClient. Bodies are rendered from Jinja2 templates in
``templates/emails``; every send returns a bool and never raises, since
delivery must not affect the account operation that triggered it.
"""

import os
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.in/v1.1/email"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: httpx.AsyncClient,
        api_url: str = "http://localhost:8084",
        frontend_url: str = "http://localhost:3000",
        app_name: str = "accounts",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._api_url = api_url.rstrip("/")
        self._frontend_url = frontend_url.rstrip("/")
        self._app_name = app_name
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def verification_link(self, token: str) -> str:
        return f"{self._api_url}/api/v1/auth/verify-email/{token}"

    def reset_link(self, token: str) -> str:
        return f"{self._frontend_url}/reset-password?token={token}"

    async def _send(
        self,
        to_email: str,
        to_name: Optional[str],
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("zepto_mail_send_failed", reason="token_not_configured")
            return False

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [
                {
                    "email_address": {
                        "address": to_email,
                        "name": to_name or to_email,
                    }
                }
            ],
            "subject": subject,
            "htmlbody": html_body,
        }
        if text_body:
            payload["textbody"] = text_body

        auth = self._settings.zepto_api_token
        if not auth.startswith("Zoho-enczapikey "):
            auth = f"Zoho-enczapikey {auth}"

        headers = {"Authorization": auth, "Content-Type": "application/json"}

        try:
            response = await self._http.post(
                _ZEPTO_API_URL,
                json=payload,
                headers=headers,
                timeout=self._settings.email_timeout_seconds,
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

        if response.status_code in (200, 201, 202):
            log.info("email_sent_success", to_email=to_email, subject=subject)
            return True
        log.error(
            "email_sent_failed",
            to_email=to_email,
            subject=subject,
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False

    async def send_verification_email(
        self, email: str, first_name: Optional[str], token: str
    ) -> bool:
        link = self.verification_link(token)
        subject = f"Verify your email - {self._app_name}"
        html_body = self._jinja.get_template("verification.html").render(
            first_name=first_name, verification_url=link, app_name=self._app_name
        )
        text_body = (
            f"Verify Your Email - {self._app_name}\n\n"
            f"Hello{f' {first_name}' if first_name else ''},\n\n"
            f"Confirm your email address by opening this link:\n{link}\n\n"
            f"The link expires in 24 hours. If you did not create an account, "
            f"ignore this email."
        )
        return await self._send(email, first_name, subject, html_body, text_body)

    async def send_welcome_email(self, email: str, first_name: Optional[str]) -> bool:
        subject = f"Welcome to {self._app_name}!"
        html_body = self._jinja.get_template("welcome.html").render(
            first_name=first_name,
            login_url=f"{self._frontend_url}/login",
            app_name=self._app_name,
        )
        text_body = (
            f"Welcome to {self._app_name}{f', {first_name}' if first_name else ''}!\n\n"
            f"Your email is verified and your account is active.\n\n"
            f"Sign in: {self._frontend_url}/login"
        )
        return await self._send(email, first_name, subject, html_body, text_body)

    async def send_password_reset_email(
        self, email: str, first_name: Optional[str], token: str
    ) -> bool:
        link = self.reset_link(token)
        subject = f"Reset your password - {self._app_name}"
        html_body = self._jinja.get_template("password_reset.html").render(
            first_name=first_name, reset_url=link, app_name=self._app_name
        )
        text_body = (
            f"Reset Your Password - {self._app_name}\n\n"
            f"Hello{f' {first_name}' if first_name else ''},\n\n"
            f"Choose a new password here:\n{link}\n\n"
            f"The link expires in 1 hour and only the most recent link works. "
            f"If you did not request a reset, ignore this email."
        )
        return await self._send(email, first_name, subject, html_body, text_body)
