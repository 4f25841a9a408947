"""
Email adapter for the booknet backend.

Messages are rendered from the Jinja2 templates in ``booknet/templates/email``
and delivered over SMTP with the credentials from Settings.
"""

from __future__ import annotations

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum
from functools import lru_cache
import logging
import os
import smtplib
import ssl

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .config import get_settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates", "email")


class EmailTemplateName(str, Enum):
    ACTIVATE_ACCOUNT = "activate_account"
    FORGOT_PASSWORD = "forgot_password"


class MailDeliveryError(Exception):
    """Raised when the SMTP server refuses or drops a message."""

    code = "delivery_failure"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@lru_cache
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        autoescape=select_autoescape(["html"]),
    )


def render_email(template: EmailTemplateName, **context) -> str:
    return _environment().get_template(f"{template.value}.html").render(**context)


def send_email(
    to_email: str,
    username: str,
    template: EmailTemplateName,
    action_url: str,
    code: str,
    subject: str,
) -> bool:
    """
    Render ``template`` and deliver it to ``to_email``.

    Returns False without sending when SMTP is not configured (local
    development). Raises MailDeliveryError when delivery itself fails.
    """
    settings = get_settings()
    if not (
        settings.smtp_host
        and settings.smtp_user
        and settings.smtp_password
        and settings.smtp_from
        and settings.smtp_port
    ):
        logger.warning("SMTP not configured; skipping '%s' email to %s", subject, to_email)
        return False
    html_body = render_email(template, username=username, confirmation_url=action_url, activation_code=code)
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to_email
    plain = f"Hello {username},\n\nYour code: {code}\n\n{action_url}\n"
    msg.attach(MIMEText(plain, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    port = settings.smtp_port or 465
    try:
        if port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(settings.smtp_host, port, context=context) as server:
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
        else:
            with smtplib.SMTP(settings.smtp_host, port) as server:
                server.ehlo()
                server.starttls(context=ssl.create_default_context())
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send '%s' email to %s: %s", subject, to_email, exc)
        raise MailDeliveryError("Could not deliver email") from exc
    return True
