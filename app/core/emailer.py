# FILE: app/core/emailer.py
from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage

from app.core.config import settings

logger = logging.getLogger(__name__)


class EmailError(RuntimeError):
    pass


def _get_from_email() -> str:
    """
    FROM address: SMTP_FROM, falling back to SMTP_USER.
    """
    from_email = settings.SMTP_FROM or settings.SMTP_USER
    if not from_email:
        raise EmailError("No FROM email configured. Set SMTP_FROM or SMTP_USER.")
    return from_email


def build_message(to_email: str, subject: str, body: str) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = _get_from_email()
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)
    return msg


def send_email(to_email: str, subject: str, body: str) -> None:
    """
    Plain-text email over SMTP (STARTTLS when SMTP_TLS is on).
    Raises EmailError when the message could not be handed to the server.
    """
    if not to_email:
        raise EmailError("send_email: recipient is required")
    if not settings.SMTP_HOST:
        raise EmailError("SMTP_HOST is not configured")

    msg = build_message(to_email, subject, body)

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            if settings.SMTP_TLS:
                server.starttls(context=ssl.create_default_context())
            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("Email to %s failed", to_email)
        raise EmailError("Could not send email. Try again later.") from e

    logger.info("Email sent to=%s subject=%s", to_email, subject)
