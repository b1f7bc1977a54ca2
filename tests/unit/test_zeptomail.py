"""Unit tests for infrastructure.email.zeptomail.ZeptoMailProvider."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from config import EmailSettings
from infrastructure.email.zeptomail import ZeptoMailProvider


def _http(status_code=201, text=""):
    client = AsyncMock()
    client.post.return_value = MagicMock(status_code=status_code, text=text)
    return client


def _provider(http, api_token="secret-api-token"):
    return ZeptoMailProvider(
        EmailSettings(
            zepto_api_token=api_token,
            zepto_from_email="noreply@example.com",
            zepto_from_name="Example",
            email_timeout_seconds=5.0,
        ),
        http,
        api_url="https://api.example.com/",
        frontend_url="https://app.example.com",
        app_name="Example",
    )


class TestLinks:
    def test_verification_link(self):
        provider = _provider(_http())
        assert (
            provider.verification_link("abc")
            == "https://api.example.com/api/v1/auth/verify-email/abc"
        )

    def test_reset_link(self):
        provider = _provider(_http())
        assert provider.reset_link("abc") == "https://app.example.com/reset-password?token=abc"


class TestSend:
    async def test_verification_email_payload(self):
        http = _http()
        ok = await _provider(http).send_verification_email("ada@example.com", "Ada", "abc")

        assert ok is True
        args, kwargs = http.post.call_args
        payload = kwargs["json"]
        assert args[0].startswith("https://api.zeptomail")
        assert kwargs["headers"]["Authorization"] == "Zoho-enczapikey secret-api-token"
        assert kwargs["timeout"] == 5.0
        assert payload["from"] == {"address": "noreply@example.com", "name": "Example"}
        assert payload["to"][0]["email_address"]["address"] == "ada@example.com"
        assert "Verify" in payload["subject"]
        assert "https://api.example.com/api/v1/auth/verify-email/abc" in payload["htmlbody"]
        assert "Ada" in payload["htmlbody"]
        assert "verify-email/abc" in payload["textbody"]

    async def test_prefixed_api_token_is_kept(self):
        http = _http()
        await _provider(http, api_token="Zoho-enczapikey xyz").send_welcome_email(
            "ada@example.com", "Ada"
        )
        assert http.post.call_args.kwargs["headers"]["Authorization"] == "Zoho-enczapikey xyz"

    async def test_reset_email_contains_link(self):
        http = _http(status_code=200)
        ok = await _provider(http).send_password_reset_email("ada@example.com", None, "r1")
        payload = http.post.call_args.kwargs["json"]
        assert ok is True
        assert "https://app.example.com/reset-password?token=r1" in payload["htmlbody"]
        # Falls back to the address when no name is known
        assert payload["to"][0]["email_address"]["name"] == "ada@example.com"

    async def test_welcome_email_links_to_login(self):
        http = _http()
        await _provider(http).send_welcome_email("ada@example.com", "Ada")
        assert "https://app.example.com/login" in http.post.call_args.kwargs["json"]["htmlbody"]

    async def test_names_are_escaped(self):
        http = _http()
        await _provider(http).send_welcome_email("ada@example.com", "<script>")
        assert "<script>" not in http.post.call_args.kwargs["json"]["htmlbody"]


class TestFailures:
    async def test_missing_api_token_skips_request(self):
        http = _http()
        ok = await _provider(http, api_token="").send_welcome_email("ada@example.com", "Ada")
        assert ok is False
        http.post.assert_not_awaited()

    @pytest.mark.parametrize("status_code", [400, 401, 500])
    async def test_error_status(self, status_code):
        http = _http(status_code=status_code, text="nope")
        assert await _provider(http).send_welcome_email("ada@example.com", "Ada") is False

    async def test_transport_error(self):
        http = AsyncMock()
        http.post.side_effect = httpx.ConnectError("connection refused")
        assert await _provider(http).send_welcome_email("ada@example.com", "Ada") is False
