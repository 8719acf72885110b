"""
Inquiry Relay Backend
FastAPI application that relays contact-form inquiries from the marketing
site to the site owner's mailbox.
"""

import logging
import os
from pathlib import Path
from typing import List
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import load_settings, log_settings_presence
from app.routers import inquiry
from app.services.mail_sender import (
    MailNotConfiguredError,
    MailSendError,
    create_mail_sender,
)
from app.services.rate_limit import SlidingWindowRateLimiter
from app.services.validation import FAILURE_MESSAGES, ValidationFailure

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

ROUTE_NOT_FOUND_MESSAGE = "Route not found / 路由未找到"
INTERNAL_ERROR_MESSAGE = "Internal server error / 服务器内部错误"
ORIGIN_NOT_ALLOWED_MESSAGE = "Origin not allowed / 不允许的来源"

settings = load_settings()
log_settings_presence()

app = FastAPI(
    title="Inquiry Relay API",
    description="Contact-form relay for the domain sales site",
    version="0.1.0",
)
app.state.settings = settings
app.state.mail_sender = None
app.state.rate_limiter = SlidingWindowRateLimiter()


def get_cors_origins() -> List[str]:
    """
    Build the list of allowed CORS origins.

    Always includes the local dev server and the production site domains.

    Additional origins are read from the CORS_ORIGINS environment variable
    as a comma-separated list, e.g.:
        CORS_ORIGINS=https://preview.crownnewmaterial.com,http://localhost:5173

    Duplicates are removed while preserving order.
    """
    always_included = [
        "http://localhost:3000",
        "https://crownnewmaterial.com",
        "https://www.crownnewmaterial.com",
        "https://crownnewmaterials.com",
        "https://www.crownnewmaterials.com",
    ]

    extra_origins: List[str] = []
    cors_env = os.getenv("CORS_ORIGINS", "").strip()
    if cors_env:
        extra_origins = [o.strip() for o in cors_env.split(",") if o.strip()]

    # Deduplicate while preserving order
    seen: set = set()
    origins: List[str] = []
    for origin in always_included + extra_origins:
        if origin not in seen:
            seen.add(origin)
            origins.append(origin)

    return origins


ALLOWED_ORIGINS = get_cors_origins()


def is_origin_allowed(origin: str, host: str | None) -> bool:
    """An origin is allowed if it is on the allow-list or is the server itself."""
    if origin in ALLOWED_ORIGINS:
        return True
    return bool(host) and urlparse(origin).netloc == host


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# Registered after CORSMiddleware so it runs first: foreign origins never
# reach a route, preflight included.
@app.middleware("http")
async def reject_disallowed_origins(request: Request, call_next):
    origin = request.headers.get("origin")
    if origin and not is_origin_allowed(origin, request.headers.get("host")):
        logger.warning(f"Rejected request from disallowed origin: {origin}")
        return JSONResponse(
            status_code=403,
            content={"success": False, "message": ORIGIN_NOT_ALLOWED_MESSAGE},
        )
    return await call_next(request)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Unknown paths and unsupported methods on known paths both read as "not found"
    if exc.status_code in (404, 405):
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": ROUTE_NOT_FOUND_MESSAGE},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """
    A body that is not an object of strings is treated as missing fields.

    The honeypot gate still comes first: a filled honeypot gets the bare
    spam result even when other fields are malformed.
    """
    body = getattr(exc, "body", None)
    if isinstance(body, dict) and body.get("honeypot"):
        logger.info("Honeypot field filled; dropping submission silently")
        return JSONResponse(status_code=200, content={"success": False})

    logger.info(f"Malformed request body on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=200,
        content={
            "success": False,
            "message": FAILURE_MESSAGES[ValidationFailure.MISSING_REQUIRED_FIELD],
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Server error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": INTERNAL_ERROR_MESSAGE},
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@app.on_event("startup")
async def init_mail_sender() -> None:
    """
    Construct the process-wide mail sender and check it can reach its provider.

    A missing or unreachable provider does not stop the server: requests are
    answered with the "service not configured" / send-failure messages instead.
    """
    if settings.is_production:
        logger.info("Server running in production mode")
    else:
        logger.info(f"Server running on port {settings.port} ({settings.app_env} mode)")

    try:
        sender = create_mail_sender(settings)
    except (MailNotConfiguredError, ValueError) as exc:
        logger.error(f"Mail sender unavailable: {exc}")
        return

    app.state.mail_sender = sender
    try:
        await sender.verify()
        logger.info(f"Mail provider '{sender.provider}' is ready to send emails")
    except MailSendError as exc:
        logger.error(f"Mail provider '{sender.provider}' connection error: {exc}")


@app.on_event("shutdown")
async def close_mail_sender() -> None:
    sender = app.state.mail_sender
    if sender is not None:
        await sender.aclose()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

app.include_router(inquiry.router, tags=["inquiry"])


@app.get("/health")
async def health():
    sender = app.state.mail_sender
    return {
        "status": "ok",
        "mail_provider": settings.email_provider,
        "mail_configured": sender is not None,
    }


# Static site pass-through; must come after the API routes.
_public_dir = Path(settings.public_dir)
if _public_dir.is_dir():
    @app.get("/", include_in_schema=False)
    async def index():
        return FileResponse(_public_dir / "index.html")

    app.mount("/", StaticFiles(directory=_public_dir), name="public")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
