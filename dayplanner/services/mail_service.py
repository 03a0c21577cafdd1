"""
Day Planner Backend — Mail Service
===================================

What:  Renders Jinja2 email templates and delivers them over SMTP.
How:   aiosmtplib for async delivery, tenacity retry on transient transport
       errors (connection refused, server disconnect, timeouts).
Who:   UserService (activation code) and ReminderService (event reminders).

Templates:
    Looked up in settings.email_template_dir, falling back to the
    templates/email directory shipped inside the package:
        activation.html   — {user: {name}, activationCode}
        reminder.html     — {user: {name}, event, eventLink}

    A matching `<name>.txt` template, when present, is attached as the
    plain-text alternative.
"""

import logging
from email.message import EmailMessage
from pathlib import Path
from typing import Any, Dict, Optional

import aiosmtplib
from jinja2 import (
    Environment,
    FileSystemLoader,
    TemplateError,
    TemplateNotFound,
    select_autoescape,
)
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from dayplanner.config import settings
from dayplanner.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

# Errors after which the same message may well go through on a second try.
# Recipient refusals and auth failures are permanent and are not retried.
TRANSIENT_SMTP_ERRORS = (
    aiosmtplib.SMTPConnectError,
    aiosmtplib.SMTPServerDisconnected,
    aiosmtplib.SMTPTimeoutError,
    ConnectionError,
    TimeoutError,
)


class MailService:
    """Template rendering + SMTP delivery."""

    def __init__(self, template_dir: Optional[str] = None):
        directory = Path(template_dir or settings.email_template_dir or DEFAULT_TEMPLATE_DIR)
        if not directory.is_dir():
            logger.warning(
                "Email template directory %s not found, using %s",
                directory,
                DEFAULT_TEMPLATE_DIR,
            )
            directory = DEFAULT_TEMPLATE_DIR
        self.template_dir = directory
        self.env = Environment(
            loader=FileSystemLoader(str(directory)),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def render(self, template: str, data: Dict[str, Any]) -> str:
        """Renders a template; unknown names raise EmailDeliveryError."""
        try:
            return self.env.get_template(template).render(**data)
        except TemplateNotFound:
            raise EmailDeliveryError(
                message=f"Email template '{template}' not found",
                context={"template": template},
            )
        except TemplateError as e:
            raise EmailDeliveryError(
                message=f"Failed to render email template '{template}'",
                context={"template": template, "error": str(e)},
            )

    def build_message(
        self, template: str, email: str, subject: str, data: Dict[str, Any]
    ) -> EmailMessage:
        html = self.render(template, data)

        message = EmailMessage()
        message["From"] = settings.mail_from
        message["To"] = email
        message["Subject"] = subject

        text_template = f"{Path(template).stem}.txt"
        try:
            text = self.env.get_template(text_template).render(**data)
        except TemplateNotFound:
            text = "This message requires an HTML-capable email client."
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        return message

    async def send_mail(
        self, template: str, email: str, subject: str, data: Dict[str, Any]
    ) -> None:
        """
        Renders `template` with `data` and delivers it to `email`.

        Raises:
            EmailDeliveryError: template missing/broken, or SMTP delivery failed
                                after all retry attempts.
        """
        message = self.build_message(template, email, subject, data)
        try:
            await self._deliver(message)
        except aiosmtplib.SMTPException as e:
            logger.error("SMTP delivery to %s failed: %s", email, e)
            raise EmailDeliveryError(
                message=f"Failed to send email to {email}",
                context={"template": template, "error_type": type(e).__name__},
            )
        except OSError as e:
            logger.error("Could not reach SMTP server %s:%d: %s", settings.smtp_host, settings.smtp_port, e)
            raise EmailDeliveryError(
                message=f"Failed to send email to {email}",
                context={"template": template, "error_type": type(e).__name__},
            )
        logger.info("Sent '%s' email to %s", template, email)

    @retry(
        retry=retry_if_exception_type(TRANSIENT_SMTP_ERRORS),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_random_exponential(
            multiplier=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _deliver(self, message: EmailMessage) -> None:
        await aiosmtplib.send(
            message,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username or None,
            password=settings.smtp_password or None,
            start_tls=settings.smtp_use_tls,
        )


mail_service = MailService()
