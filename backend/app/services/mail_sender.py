"""
Outbound mail capability.

The inquiry handler only knows the MailSender interface; the concrete
backend is chosen once at startup from the EMAIL_PROVIDER env var.

Supported providers:
  - smtp    (default) - any SMTP server, via smtplib
  - resend  - Resend transactional-email HTTP API, via httpx

Adding a new provider:
  1. Subclass MailSender and implement send() (and verify() if the provider
     offers a cheap connectivity check).
  2. Write a _build_<provider>(settings) factory and register it in _SENDERS.
  3. Set EMAIL_PROVIDER=<provider> in the environment.

Senders are constructed once per process and reused for every request; they
hold no per-request state.
"""

import asyncio
import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from email import policy
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Callable, Optional

import httpx

from app.config import Settings
from app.models.outbound_email import OutboundEmail

logger = logging.getLogger(__name__)

RESEND_API_BASE_URL = "https://api.resend.com"


class MailSendError(Exception):
    """Raised when a backend fails to hand a message to its provider."""


class MailNotConfiguredError(Exception):
    """Raised when the selected provider is missing credentials."""


class MailSender(ABC):
    """Interface every mail backend implements."""

    provider: str = ""

    @abstractmethod
    async def send(self, email: OutboundEmail) -> str:
        """
        Send one email.

        Returns:
            The provider-assigned message id.

        Raises:
            MailSendError: if the provider rejects or cannot be reached.
        """

    async def verify(self) -> None:
        """Check connectivity and credentials. Raises MailSendError on failure."""

    async def aclose(self) -> None:
        """Release any long-lived resources."""


# ---------------------------------------------------------------------------
# SMTP backend
# ---------------------------------------------------------------------------

class SmtpMailSender(MailSender):
    """
    SMTP backend.

    With secure=True (the default) the connection uses implicit TLS
    (SMTP_SSL, usually port 465); otherwise a plain connection is upgraded
    with STARTTLS (usually port 587). smtplib is blocking, so every
    operation runs in a worker thread.
    """

    provider = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        secure: bool = True,
        timeout: float = 30.0,
    ):
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._secure = secure
        self._timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        logger.debug(f"Connecting to SMTP server {self._host}:{self._port} (secure={self._secure})")
        context = ssl.create_default_context()
        if self._secure:
            server = smtplib.SMTP_SSL(
                self._host, self._port, timeout=self._timeout, context=context
            )
        else:
            server = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
        try:
            if not self._secure:
                server.starttls(context=context)
            if self._username and self._password:
                server.login(self._username, self._password)
        except Exception:
            server.close()
            raise
        return server

    def _build_message(self, email: OutboundEmail) -> tuple[MIMEMultipart, str]:
        # EmailPolicy so non-ASCII subjects and display names are RFC 2047 encoded
        msg = MIMEMultipart("alternative", policy=policy.SMTP)
        msg["Subject"] = email.subject
        msg["From"] = email.from_address
        msg["To"] = email.to
        msg["Reply-To"] = email.reply_to
        message_id = make_msgid(domain=self._host)
        msg["Message-ID"] = message_id
        msg.attach(MIMEText(email.html, "html", "utf-8"))
        return msg, message_id

    def _send_sync(self, email: OutboundEmail) -> str:
        msg, message_id = self._build_message(email)
        with self._connect() as server:
            server.send_message(msg)
        return message_id

    def _verify_sync(self) -> None:
        with self._connect() as server:
            server.noop()

    async def send(self, email: OutboundEmail) -> str:
        try:
            return await asyncio.to_thread(self._send_sync, email)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailSendError(f"SMTP send failed: {exc}") from exc

    async def verify(self) -> None:
        try:
            await asyncio.to_thread(self._verify_sync)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailSendError(f"SMTP connection check failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Resend backend
# ---------------------------------------------------------------------------

class ResendMailSender(MailSender):
    """
    Resend HTTP API backend.

    POST /emails with a JSON body:
      from      str        - sender, may include a display name
      to        list[str]  - recipients
      subject   str
      html      str
      reply_to  str

    A 2xx response carries {"id": "<message id>"}.
    """

    provider = "resend"

    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        base_url: str = RESEND_API_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            timeout=timeout,
        )

    async def send(self, email: OutboundEmail) -> str:
        body = {
            "from": email.from_address,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
            "reply_to": email.reply_to,
        }
        try:
            response = await self._client.post("/emails", json=body)
        except httpx.HTTPError as exc:
            raise MailSendError(f"Resend request failed: {exc}") from exc

        if not response.is_success:
            raise MailSendError(
                f"Resend API error {response.status_code}: {response.text}"
            )

        try:
            message_id = response.json().get("id")
        except ValueError as exc:
            raise MailSendError("Resend API returned a non-JSON response") from exc
        if not message_id:
            raise MailSendError("Resend API response did not include a message id")
        return message_id

    async def verify(self) -> None:
        if not self._api_key:
            raise MailSendError("Resend API key is empty")

    async def aclose(self) -> None:
        await self._client.aclose()


# ---------------------------------------------------------------------------
# Registry and factory
# ---------------------------------------------------------------------------

def _build_smtp(settings: Settings) -> MailSender:
    """EMAIL_HOST is required; EMAIL_USER and EMAIL_PASSWORD are optional but go together."""
    if not settings.email_host:
        raise MailNotConfiguredError(
            "SMTP provider is missing configuration: EMAIL_HOST"
        )
    if bool(settings.email_user) != bool(settings.email_password):
        raise MailNotConfiguredError(
            "SMTP provider needs both EMAIL_USER and EMAIL_PASSWORD, or neither"
        )
    if not settings.email_user:
        logger.info("SMTP credentials not set; sending without authentication")
    return SmtpMailSender(
        host=settings.email_host,
        port=settings.email_port,
        username=settings.email_user,
        password=settings.email_password,
        secure=settings.email_secure,
        timeout=settings.email_timeout,
    )


def _build_resend(settings: Settings) -> MailSender:
    if not settings.resend_api_key:
        raise MailNotConfiguredError(
            "Resend provider is missing configuration: RESEND_API_KEY"
        )
    return ResendMailSender(
        api_key=settings.resend_api_key,
        timeout=settings.email_timeout,
    )


_SENDERS: dict[str, Callable[[Settings], MailSender]] = {
    "smtp": _build_smtp,
    "resend": _build_resend,
}


def create_mail_sender(settings: Settings, provider: str | None = None) -> MailSender:
    """
    Construct the mail sender for the configured provider.

    Priority:
      1. provider argument (explicit, used in tests)
      2. settings.email_provider (EMAIL_PROVIDER env var, default "smtp")

    Raises:
        ValueError: unknown provider name.
        MailNotConfiguredError: the provider's credentials are missing.
    """
    resolved = (provider or settings.email_provider).lower().strip()

    builder = _SENDERS.get(resolved)
    if builder is None:
        raise ValueError(
            f"Unknown email provider {resolved!r}. "
            f"Supported providers: {sorted(_SENDERS)}"
        )

    return builder(settings)
