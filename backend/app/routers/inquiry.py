"""
Contact-form inquiry router.

Endpoints:
  POST /send-email   - validate a submission and email it to the site owner

Application-level outcomes (validation failures, spam, send failures) are
all answered with HTTP 200 and reported in the body as
{success, message?, debug?}. Only the rate limiter answers with 429.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from app.config import Settings
from app.models.inquiry import InquiryResponse, InquirySubmission
from app.services.inquiry_handler import handle_inquiry
from app.services.mail_sender import MailSender
from app.services.rate_limit import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter()

TOO_MANY_REQUESTS_MESSAGE = (
    "Too many requests. Please try again in 15 minutes. / 请求次数过多，请15分钟后再试。"
)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_settings(request: Request) -> Settings:
    """Settings loaded once when the app module is imported."""
    return request.app.state.settings


def get_mail_sender(request: Request) -> Optional[MailSender]:
    """The process-wide mail sender; None when the provider is not configured."""
    return getattr(request.app.state, "mail_sender", None)


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.rate_limiter


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(
    request: Request,
    response: Response,
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
) -> None:
    """
    Count the request against the caller's window.

    Raises 429 once the caller has used up the window; otherwise sets the
    RateLimit-* headers on the response.
    """
    key = _client_key(request)
    decision = limiter.hit(key)
    headers = {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
    }
    if not decision.allowed:
        logger.warning(f"Rate limit exceeded for client {key}")
        headers["Retry-After"] = str(decision.retry_after)
        raise HTTPException(
            status_code=429,
            detail=TOO_MANY_REQUESTS_MESSAGE,
            headers=headers,
        )
    response.headers.update(headers)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/send-email",
    response_model=InquiryResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_rate_limit)],
)
async def send_email(
    submission: InquirySubmission,
    settings: Settings = Depends(get_settings),
    mail_sender: Optional[MailSender] = Depends(get_mail_sender),
):
    result = await handle_inquiry(submission, settings, mail_sender)
    return result.to_response()
