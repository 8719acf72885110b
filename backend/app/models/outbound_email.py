"""
Provider-agnostic outbound email model.

The inquiry handler builds an OutboundEmail and hands it to whichever
MailSender backend is configured; only the backend knows how to turn it into
an SMTP message or a Resend API request.
"""

from pydantic import BaseModel


class OutboundEmail(BaseModel):
    """
    A single notification email, ready to send.

    from_address may carry a display name, e.g. '"域名咨询" <sales@example.com>'.
    """

    from_address: str
    to: str
    reply_to: str
    subject: str
    html: str
