"""
Unit tests for the outbound mail capability.

SMTP is tested against a mocked smtplib; Resend against httpx.MockTransport.
No real network calls.

Coverage:
  - create_mail_sender provider resolution and configuration checks
  - SmtpMailSender: implicit TLS, STARTTLS, message headers, error mapping
  - ResendMailSender: request body, message id, API and transport errors
"""

import json
import smtplib

import httpx
import pytest
from unittest.mock import MagicMock, patch

from app.config import Settings
from app.models.outbound_email import OutboundEmail
from app.services.mail_sender import (
    MailNotConfiguredError,
    MailSendError,
    MailSender,
    ResendMailSender,
    SmtpMailSender,
    create_mail_sender,
)


def _email() -> OutboundEmail:
    return OutboundEmail(
        from_address='"域名咨询" <sales@example.com>',
        to="owner@example.com",
        reply_to="zhang@example.com",
        subject="新域名购买咨询",
        html="<p>Zhang Wei</p>",
    )


def _smtp_settings(**overrides) -> Settings:
    fields = {
        "email_host": "smtp.example.com",
        "email_port": 465,
        "email_user": "sales@example.com",
        "email_password": "secret",
    }
    fields.update(overrides)
    return Settings(**fields)


def _mock_smtp_class() -> MagicMock:
    """A mock SMTP class whose instances work as their own context manager."""
    smtp_class = MagicMock()
    server = smtp_class.return_value
    server.__enter__.return_value = server
    return smtp_class


def _resend_sender(handler) -> ResendMailSender:
    client = httpx.AsyncClient(
        base_url="https://api.resend.test",
        transport=httpx.MockTransport(handler),
    )
    return ResendMailSender(api_key="re_test", client=client)


# ===========================================================================
# create_mail_sender
# ===========================================================================

class TestCreateMailSender:

    def test_defaults_to_smtp(self):
        sender = create_mail_sender(_smtp_settings())
        assert isinstance(sender, SmtpMailSender)
        assert sender.provider == "smtp"

    def test_resend_provider_from_settings(self):
        sender = create_mail_sender(Settings(email_provider="resend", resend_api_key="re_123"))
        assert isinstance(sender, ResendMailSender)

    def test_explicit_provider_overrides_settings(self):
        settings = Settings(email_provider="smtp", resend_api_key="re_123")
        sender = create_mail_sender(settings, provider="Resend ")
        assert isinstance(sender, ResendMailSender)

    def test_unknown_provider_raises_value_error(self):
        with pytest.raises(ValueError, match="Unknown email provider 'carrier-pigeon'"):
            create_mail_sender(_smtp_settings(), provider="carrier-pigeon")

    def test_smtp_missing_host(self):
        with pytest.raises(MailNotConfiguredError, match="EMAIL_HOST"):
            create_mail_sender(_smtp_settings(email_host=None))

    def test_smtp_without_credentials_is_allowed(self):
        sender = create_mail_sender(Settings(email_host="smtp.example.com"))
        assert isinstance(sender, SmtpMailSender)

    @pytest.mark.parametrize("missing", ["email_user", "email_password"])
    def test_smtp_half_configured_credentials(self, missing):
        with pytest.raises(MailNotConfiguredError) as exc_info:
            create_mail_sender(_smtp_settings(**{missing: None}))
        assert "EMAIL_USER" in str(exc_info.value)
        assert "EMAIL_PASSWORD" in str(exc_info.value)

    def test_resend_missing_api_key(self):
        with pytest.raises(MailNotConfiguredError, match="RESEND_API_KEY"):
            create_mail_sender(Settings(email_provider="resend"))


class TestMailSenderInterface:

    def test_backend_without_send_cannot_be_constructed(self):
        class Incomplete(MailSender):
            provider = "incomplete"

        with pytest.raises(TypeError):
            Incomplete()

    @pytest.mark.asyncio
    async def test_verify_and_aclose_default_to_no_ops(self):
        class Minimal(MailSender):
            provider = "minimal"

            async def send(self, email):
                return "id-1"

        sender = Minimal()
        await sender.verify()
        await sender.aclose()
        assert await sender.send(_email()) == "id-1"


# ===========================================================================
# SmtpMailSender
# ===========================================================================

class TestSmtpMailSender:

    @pytest.mark.asyncio
    async def test_send_over_implicit_tls(self):
        smtp_ssl = _mock_smtp_class()
        sender = create_mail_sender(_smtp_settings())

        with patch("app.services.mail_sender.smtplib.SMTP_SSL", smtp_ssl):
            message_id = await sender.send(_email())

        assert smtp_ssl.call_args.args == ("smtp.example.com", 465)
        server = smtp_ssl.return_value
        server.login.assert_called_once_with("sales@example.com", "secret")
        server.starttls.assert_not_called()
        server.send_message.assert_called_once()

        msg = server.send_message.call_args.args[0]
        assert msg["To"] == "owner@example.com"
        assert msg["Reply-To"] == "zhang@example.com"
        assert msg["Message-ID"] == message_id
        assert message_id.startswith("<") and message_id.endswith("@smtp.example.com>")

    @pytest.mark.asyncio
    async def test_send_with_starttls_when_not_secure(self):
        smtp_plain = _mock_smtp_class()
        sender = create_mail_sender(_smtp_settings(email_secure=False, email_port=587))

        with patch("app.services.mail_sender.smtplib.SMTP", smtp_plain):
            await sender.send(_email())

        server = smtp_plain.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once()
        server.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_send_without_credentials_skips_login(self):
        smtp_plain = _mock_smtp_class()
        sender = create_mail_sender(
            Settings(email_host="relay.internal", email_port=25, email_secure=False)
        )

        with patch("app.services.mail_sender.smtplib.SMTP", smtp_plain):
            await sender.send(_email())

        server = smtp_plain.return_value
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_authentication_failure_raises_mail_send_error(self):
        smtp_ssl = _mock_smtp_class()
        smtp_ssl.return_value.login.side_effect = smtplib.SMTPAuthenticationError(
            535, b"Authentication failed"
        )
        sender = create_mail_sender(_smtp_settings())

        with patch("app.services.mail_sender.smtplib.SMTP_SSL", smtp_ssl):
            with pytest.raises(MailSendError, match="Authentication failed"):
                await sender.send(_email())

        smtp_ssl.return_value.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_connection_error_raises_mail_send_error(self):
        smtp_ssl = MagicMock(side_effect=ConnectionRefusedError("refused"))
        sender = create_mail_sender(_smtp_settings())

        with patch("app.services.mail_sender.smtplib.SMTP_SSL", smtp_ssl):
            with pytest.raises(MailSendError, match="refused"):
                await sender.send(_email())

    @pytest.mark.asyncio
    async def test_verify_issues_noop(self):
        smtp_ssl = _mock_smtp_class()
        sender = create_mail_sender(_smtp_settings())

        with patch("app.services.mail_sender.smtplib.SMTP_SSL", smtp_ssl):
            await sender.verify()

        smtp_ssl.return_value.noop.assert_called_once()


# ===========================================================================
# ResendMailSender
# ===========================================================================

class TestResendMailSender:

    @pytest.mark.asyncio
    async def test_send_posts_email_and_returns_id(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "re_msg_123"})

        sender = _resend_sender(handler)
        message_id = await sender.send(_email())
        await sender.aclose()

        assert message_id == "re_msg_123"
        assert captured["path"] == "/emails"
        assert captured["body"] == {
            "from": '"域名咨询" <sales@example.com>',
            "to": ["owner@example.com"],
            "subject": "新域名购买咨询",
            "html": "<p>Zhang Wei</p>",
            "reply_to": "zhang@example.com",
        }

    @pytest.mark.asyncio
    async def test_default_client_sends_bearer_token(self):
        sender = ResendMailSender(api_key="re_abc")
        assert sender._client.headers["Authorization"] == "Bearer re_abc"
        assert str(sender._client.base_url).startswith("https://api.resend.com")
        await sender.aclose()

    @pytest.mark.asyncio
    async def test_api_error_raises_mail_send_error(self):
        def handler(request):
            return httpx.Response(422, json={"message": "Invalid `from` field"})

        sender = _resend_sender(handler)
        with pytest.raises(MailSendError, match="422"):
            await sender.send(_email())

    @pytest.mark.asyncio
    async def test_transport_error_raises_mail_send_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        sender = _resend_sender(handler)
        with pytest.raises(MailSendError, match="connection refused"):
            await sender.send(_email())

    @pytest.mark.asyncio
    async def test_missing_id_raises_mail_send_error(self):
        sender = _resend_sender(lambda request: httpx.Response(200, json={}))
        with pytest.raises(MailSendError, match="message id"):
            await sender.send(_email())

    @pytest.mark.asyncio
    async def test_non_json_response_raises_mail_send_error(self):
        sender = _resend_sender(lambda request: httpx.Response(200, text="OK"))
        with pytest.raises(MailSendError, match="non-JSON"):
            await sender.send(_email())
