"""
Notification email rendering.

Turns a validated InquirySubmission into the OutboundEmail sent to the site
owner: a single fixed HTML layout (a two-column table) with the sender's
details, their message and the time the inquiry was sent.

The timestamp is printed the way the zh-CN locale prints dates
(e.g. "2025/3/7 09:05:02") in Asia/Shanghai time, regardless of the
server's own timezone.

Public API:
  render_notification(submission, settings, now=None) -> OutboundEmail
  format_sent_at(moment) -> str
"""

import html
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import Settings
from app.models.inquiry import InquirySubmission
from app.models.outbound_email import OutboundEmail

NOTIFICATION_SUBJECT = "新域名购买咨询"
PHONE_PLACEHOLDER = "未提供"
DISPLAY_TIMEZONE = ZoneInfo("Asia/Shanghai")

# Row labels, in display order: name, email, phone, message, sent at
_LABELS = ("姓名", "邮箱", "电话", "留言", "发送时间")

_CELL_STYLE = "padding: 10px; border-bottom: 1px solid #eee;"
_LAST_CELL_STYLE = "padding: 10px;"

_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #333; border-bottom: 2px solid #4CAF50; padding-bottom: 10px;">{title}</h2>
    <table style="width: 100%; border-collapse: collapse;">
{rows}
    </table>
</div>
"""


def format_sent_at(moment: datetime) -> str:
    """Format an aware datetime as zh-CN prints it, in Asia/Shanghai time."""
    local = moment.astimezone(DISPLAY_TIMEZONE)
    return f"{local.year}/{local.month}/{local.day} {local:%H:%M:%S}"


def format_sender(settings: Settings) -> str:
    """Return the From header value, e.g. '"域名咨询" <sales@example.com>'."""
    display_name = settings.email_from_name.replace('"', "")
    return f'"{display_name}" <{settings.email_from}>'


def _row(label: str, value_html: str, last: bool = False) -> str:
    style = _LAST_CELL_STYLE if last else _CELL_STYLE
    return (
        "        <tr>\n"
        f'            <td style="{style} font-weight: bold; width: 100px;">{label}:</td>\n'
        f'            <td style="{style}">{value_html}</td>\n'
        "        </tr>"
    )


def render_html(submission: InquirySubmission, sent_at: str) -> str:
    name = html.escape(submission.name)
    email = html.escape(submission.email)
    phone = html.escape(submission.phone) if submission.phone else PHONE_PLACEHOLDER
    message = html.escape(submission.message).replace("\n", "<br>")

    values = [
        name,
        f'<a href="mailto:{email}">{email}</a>',
        phone,
        message,
        sent_at,
    ]
    rows = [
        _row(label, value, last=(i == len(_LABELS) - 1))
        for i, (label, value) in enumerate(zip(_LABELS, values))
    ]
    return _TEMPLATE.format(title=NOTIFICATION_SUBJECT, rows="\n".join(rows))


def render_notification(
    submission: InquirySubmission,
    settings: Settings,
    now: Optional[datetime] = None,
) -> OutboundEmail:
    """
    Build the notification email for a submission that passed validation.

    Args:
        submission: Validated submission (name, email and message are set).
        settings:   Provides sender and receiver addresses.
        now:        Send time; defaults to the current UTC time.
    """
    moment = now or datetime.now(timezone.utc)
    return OutboundEmail(
        from_address=format_sender(settings),
        to=settings.receiver_email,
        reply_to=submission.email,
        subject=NOTIFICATION_SUBJECT,
        html=render_html(submission, format_sent_at(moment)),
    )
