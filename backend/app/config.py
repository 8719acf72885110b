"""
Runtime configuration.

All settings come from environment variables (optionally loaded from a .env
file). They are read once at startup by load_settings() and the resulting
Settings object is kept on app.state for the lifetime of the process.

Values are never logged; log_settings_presence() only reports whether each
variable is set.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_EMAIL_PROVIDER = "smtp"
DEFAULT_EMAIL_PORT = 465
DEFAULT_EMAIL_TIMEOUT = 30.0
DEFAULT_FROM_NAME = "域名咨询"
DEFAULT_PORT = 3000
DEFAULT_PUBLIC_DIR = "public"

# Variables reported by log_settings_presence(), in display order
_REPORTED_VARS = [
    "EMAIL_PROVIDER",
    "EMAIL_HOST",
    "EMAIL_PORT",
    "EMAIL_USER",
    "EMAIL_PASSWORD",
    "RESEND_API_KEY",
    "EMAIL_FROM",
    "RECEIVER_EMAIL",
]

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    email_provider: str = DEFAULT_EMAIL_PROVIDER
    email_host: Optional[str] = None
    email_port: int = DEFAULT_EMAIL_PORT
    email_user: Optional[str] = None
    email_password: Optional[str] = None
    email_secure: bool = True
    resend_api_key: Optional[str] = None
    email_from: Optional[str] = None
    email_from_name: str = DEFAULT_FROM_NAME
    receiver_email: Optional[str] = None
    email_timeout: float = DEFAULT_EMAIL_TIMEOUT
    port: int = DEFAULT_PORT
    app_env: str = "production"
    public_dir: str = DEFAULT_PUBLIC_DIR

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


def _get(name: str) -> Optional[str]:
    """Return the stripped env var, or None when unset or blank."""
    value = os.getenv(name, "").strip()
    return value or None


def _get_int(name: str, default: int) -> int:
    raw = _get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _get_float(name: str, default: float) -> float:
    raw = _get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _get_bool(name: str, default: bool) -> bool:
    raw = _get(name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


def load_settings() -> Settings:
    """
    Build Settings from the current environment.

    Raises ValueError for malformed numeric or boolean values so that a
    misconfigured deployment fails at startup rather than on the first request.
    """
    return Settings(
        email_provider=(_get("EMAIL_PROVIDER") or DEFAULT_EMAIL_PROVIDER).lower(),
        email_host=_get("EMAIL_HOST"),
        email_port=_get_int("EMAIL_PORT", DEFAULT_EMAIL_PORT),
        email_user=_get("EMAIL_USER"),
        email_password=_get("EMAIL_PASSWORD"),
        email_secure=_get_bool("EMAIL_SECURE", True),
        resend_api_key=_get("RESEND_API_KEY"),
        email_from=_get("EMAIL_FROM"),
        email_from_name=_get("EMAIL_FROM_NAME") or DEFAULT_FROM_NAME,
        receiver_email=_get("RECEIVER_EMAIL"),
        email_timeout=_get_float("EMAIL_TIMEOUT", DEFAULT_EMAIL_TIMEOUT),
        port=_get_int("PORT", DEFAULT_PORT),
        app_env=(_get("APP_ENV") or "production").lower(),
        public_dir=_get("PUBLIC_DIR") or DEFAULT_PUBLIC_DIR,
    )


def log_settings_presence() -> None:
    """Log which configuration variables are set, without their values."""
    lines = [
        f"  {name}: {'set' if _get(name) else 'MISSING'}"
        for name in _REPORTED_VARS
    ]
    logger.info("Environment variables check:\n%s", "\n".join(lines))
