"""
Models for the contact-form inquiry endpoint.

Models:
  InquirySubmission  - POST /send-email request body
  InquiryResponse    - response body ({success, message?, debug?})
  DispatchResult     - outcome of handle_inquiry()
"""

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel


class InquirySubmission(BaseModel):
    """
    Contact-form submission as posted by the marketing site.

    Every field is optional at the schema level: missing required fields are
    reported by the handler with a bilingual message, not as a 422.
    """
    model_config = {"extra": "ignore"}

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None
    # Hidden field, real users leave it empty. Any JSON type is accepted so a
    # bot filling it with a number still gets the silent spam result.
    honeypot: Optional[Any] = None


class InquiryResponse(BaseModel):
    """Response body. None fields are dropped from the JSON."""
    success: bool
    message: Optional[str] = None
    debug: Optional[str] = None


@dataclass
class DispatchResult:
    success: bool
    message_id: Optional[str] = None
    message: Optional[str] = None
    debug: Optional[str] = None

    def to_response(self) -> InquiryResponse:
        return InquiryResponse(
            success=self.success,
            message=self.message,
            debug=self.debug,
        )
