"""
Inquiry handler: validate a contact-form submission and relay it by email.

A single linear pipeline per request, each step a hard gate:

  validate  ->  check mail configuration  ->  render  ->  send  ->  map result

Every branch ends in a DispatchResult; nothing is retried, queued or stored.
The handler never raises: transport errors and unexpected exceptions are
logged here and turned into the generic failure result.

Public API:
  handle_inquiry(submission, settings, mail_sender) -> DispatchResult
"""

import logging
from datetime import datetime
from typing import Optional

from app.config import Settings
from app.models.inquiry import DispatchResult, InquirySubmission
from app.services.mail_sender import MailSender
from app.services.notification import render_notification
from app.services.validation import ValidationFailure, validate_submission

logger = logging.getLogger(__name__)

SEND_FAILED_MESSAGE = "Failed to send email / 发送邮件失败，请稍后重试"
NOT_CONFIGURED_MESSAGE = "Email service not configured / 邮件服务未配置"


def _send_failure(settings: Settings, exc: Exception) -> DispatchResult:
    return DispatchResult(
        success=False,
        message=SEND_FAILED_MESSAGE,
        debug=None if settings.is_production else str(exc),
    )


async def handle_inquiry(
    submission: InquirySubmission,
    settings: Settings,
    mail_sender: Optional[MailSender],
    now: Optional[datetime] = None,
) -> DispatchResult:
    """
    Run one submission through the pipeline.

    Args:
        submission:  Parsed request body.
        settings:    Process settings (addresses, production flag).
        mail_sender: The process-wide sender, or None if the provider
                     could not be configured at startup.
        now:         Send time used in the rendered email (tests pin it).
    """
    try:
        validation = validate_submission(submission)
        if not validation.ok:
            if validation.reason is ValidationFailure.SPAM_DETECTED:
                logger.info("Honeypot field filled; dropping submission silently")
            else:
                logger.info(f"Submission rejected: {validation.reason.value}")
            return DispatchResult(success=False, message=validation.message)

        if mail_sender is None or not settings.email_from or not settings.receiver_email:
            logger.error(
                "Mail sending is not configured (sender=%s, EMAIL_FROM=%s, RECEIVER_EMAIL=%s)",
                "ready" if mail_sender else "missing",
                "set" if settings.email_from else "missing",
                "set" if settings.receiver_email else "missing",
            )
            return DispatchResult(success=False, message=NOT_CONFIGURED_MESSAGE)

        email = render_notification(submission, settings, now=now)
        message_id = await mail_sender.send(email)

    except Exception as exc:
        logger.error(
            "Email send error: %s: %s",
            type(exc).__name__,
            exc,
            exc_info=True,
        )
        return _send_failure(settings, exc)

    logger.info(f"Email sent successfully: {message_id}")
    return DispatchResult(success=True, message_id=message_id)
