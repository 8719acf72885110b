"""
Contact-form submission validation.

Checks run in a fixed order and the first failure wins:

  1. honeypot   - any value means a bot filled the hidden field (silent reject)
  2. required   - name, email and message must be non-empty
  3. name       - letters of any script plus whitespace, 2-50 characters
  4. email      - simple local@domain.tld shape
  5. phone      - optional; digits, whitespace and -+() only, 5-20 characters

Public API:
  validate_submission(submission: InquirySubmission) -> ValidationResult
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.models.inquiry import InquirySubmission


class ValidationFailure(str, Enum):
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_NAME = "invalid_name"
    INVALID_EMAIL = "invalid_email"
    INVALID_PHONE = "invalid_phone"
    SPAM_DETECTED = "spam_detected"


# User-facing messages, returned verbatim to the caller.
# SPAM_DETECTED deliberately has none so the sender is not told they were flagged.
FAILURE_MESSAGES: dict[ValidationFailure, Optional[str]] = {
    ValidationFailure.MISSING_REQUIRED_FIELD: "Required fields are missing / 缺少必填字段",
    ValidationFailure.INVALID_NAME: "Invalid name format / 姓名格式不正确",
    ValidationFailure.INVALID_EMAIL: "Invalid email format / 邮箱格式不正确",
    ValidationFailure.INVALID_PHONE: "Invalid phone format / 电话格式不正确",
    ValidationFailure.SPAM_DETECTED: None,
}

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}")
PHONE_PATTERN = re.compile(r"[0-9\s\-+()]{5,20}")


@dataclass
class ValidationResult:
    ok: bool
    reason: Optional[ValidationFailure] = None
    message: Optional[str] = None

    @classmethod
    def passed(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def failed(cls, reason: ValidationFailure) -> "ValidationResult":
        return cls(ok=False, reason=reason, message=FAILURE_MESSAGES[reason])


def is_valid_name(name: str) -> bool:
    """
    Return True if name is 2-50 characters of letters and whitespace.

    str.isalpha() covers every Unicode letter category, so Chinese, Cyrillic,
    accented Latin etc. are all accepted; digits, hyphens and apostrophes are not.
    """
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        return False
    return all(ch.isalpha() or ch.isspace() for ch in name)


def is_valid_email(email: str) -> bool:
    return EMAIL_PATTERN.fullmatch(email) is not None


def is_valid_phone(phone: str) -> bool:
    return PHONE_PATTERN.fullmatch(phone) is not None


def validate_submission(submission: InquirySubmission) -> ValidationResult:
    if submission.honeypot:
        return ValidationResult.failed(ValidationFailure.SPAM_DETECTED)

    # Present and non-empty; whitespace-only values go on to the format checks
    if not (submission.name and submission.email and submission.message):
        return ValidationResult.failed(ValidationFailure.MISSING_REQUIRED_FIELD)

    if not is_valid_name(submission.name):
        return ValidationResult.failed(ValidationFailure.INVALID_NAME)

    if not is_valid_email(submission.email):
        return ValidationResult.failed(ValidationFailure.INVALID_EMAIL)

    # An empty phone string counts as "not provided"
    if submission.phone and not is_valid_phone(submission.phone):
        return ValidationResult.failed(ValidationFailure.INVALID_PHONE)

    return ValidationResult.passed()
