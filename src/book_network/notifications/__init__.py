"""Outbound notifications (activation emails)."""

from .email import (
    EmailSender,
    EmailTemplate,
    LoggingEmailSender,
    SmtpEmailSender,
    create_email_sender,
    render_template,
)

__all__ = [
    "EmailSender",
    "EmailTemplate",
    "LoggingEmailSender",
    "SmtpEmailSender",
    "create_email_sender",
    "render_template",
]
