"""
Email delivery for account activation.

Messages are rendered from Jinja2 templates shipped in
``book_network/templates``. Two senders implement the same interface:
``LoggingEmailSender`` writes the message to the log (the default, handy in
development) and ``SmtpEmailSender`` delivers it through an SMTP relay.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum

from jinja2 import Environment, PackageLoader, select_autoescape

from ..config import ServerConfig
from ..exceptions import NotificationError

logger = logging.getLogger(__name__)


class EmailTemplate(str, Enum):
    """Available email templates (file name without extension)."""

    ACTIVATE_ACCOUNT = "activate_account"


_environment = Environment(
    loader=PackageLoader("book_network", "templates"),
    autoescape=select_autoescape(["html"]),
)


def render_template(template: EmailTemplate, **context) -> str:
    return _environment.get_template(f"{template.value}.html").render(**context)


class EmailSender(ABC):
    """Sends templated emails."""

    def send(
        self,
        to: str,
        username: str,
        template: EmailTemplate,
        confirmation_url: str,
        activation_code: str,
        subject: str,
    ) -> None:
        html_body = render_template(
            template,
            username=username,
            confirmation_url=confirmation_url,
            activation_code=activation_code,
        )
        self.deliver(to, subject, html_body)

    @abstractmethod
    def deliver(self, to: str, subject: str, html_body: str) -> None:
        """Hand a rendered message to the transport."""


class LoggingEmailSender(EmailSender):
    """Writes emails to the log instead of sending them."""

    def deliver(self, to: str, subject: str, html_body: str) -> None:
        logger.info("Email to %s - %s\n%s", to, subject, html_body)


class SmtpEmailSender(EmailSender):
    """Delivers emails through an SMTP server."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = False,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls

    def deliver(self, to: str, subject: str, html_body: str) -> None:
        msg = MIMEMultipart()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as server:
                if self.use_tls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password or "")
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.exception("Failed to send email to %s", to)
            raise NotificationError(f"Could not send email to {to}") from e

        logger.info("Sent '%s' email to %s", subject, to)


def create_email_sender(config: ServerConfig) -> EmailSender:
    """Build the sender selected by ``mail_backend``."""
    if config.mail_backend == "smtp":
        return SmtpEmailSender(
            host=config.smtp_host,
            port=config.smtp_port,
            sender=config.mail_sender,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
        )
    return LoggingEmailSender()
