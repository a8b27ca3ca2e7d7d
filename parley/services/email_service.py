"""
parley.services.email_service — Outbound Email
===============================================

Plain-text mail over SMTP.  Connection settings come from the environment
(``SMTP_HOST``, ``SMTP_PORT``, ``SMTP_USER``, ``SMTP_PASSWORD``,
``SMTP_FROM``, ``SMTP_USE_TLS``).  With no ``SMTP_HOST`` configured the
message is logged instead of sent, which is the development default.
"""

from __future__ import annotations

import logging
import os
import smtplib
from email.message import EmailMessage
from urllib.parse import urlencode

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


def _smtp_settings() -> dict:
    return {
        "host": os.getenv("SMTP_HOST", "").strip(),
        "port": int(os.getenv("SMTP_PORT", "587") or 0),
        "username": os.getenv("SMTP_USER", "").strip(),
        "password": os.getenv("SMTP_PASSWORD", ""),
        "sender": os.getenv("SMTP_FROM", "").strip(),
        "use_tls": os.getenv("SMTP_USE_TLS", "true").strip().lower() in ("1", "true", "yes"),
    }


def send_email(to: str, subject: str, body: str) -> None:
    """Send a plain-text email to *to*.

    Raises
    ------
    EmailDeliveryError
        If the address is blank, SMTP is half-configured, or delivery fails.
    """
    to = (to or "").strip()
    if not to:
        raise EmailDeliveryError("Recipient address is empty")

    cfg = _smtp_settings()
    if not cfg["host"]:
        logger.warning("[EMAIL MOCK] to=%s subject=%r\n%s", to, subject, body)
        return
    if not cfg["port"] or not cfg["sender"]:
        raise EmailDeliveryError("SMTP_PORT and SMTP_FROM must be set with SMTP_HOST")

    msg = EmailMessage()
    msg["From"] = cfg["sender"]
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host=cfg["host"], port=cfg["port"], timeout=15) as client:
            client.ehlo()
            if cfg["use_tls"]:
                client.starttls()
                client.ehlo()
            if cfg["username"]:
                client.login(cfg["username"], cfg["password"])
            client.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        raise EmailDeliveryError(f"Email delivery to {to} failed: {exc}") from exc

    logger.info("Email sent to %s (%s)", to, subject)


def archive_link(frontend_url: str, topic_id: int, token: str) -> str:
    query = urlencode({"token": token, "topicId": topic_id})
    return f"{frontend_url.rstrip('/')}/archive-topic?{query}"


def send_archive_topic_email(
    to: str,
    topic_name: str,
    topic_id: int,
    token: str,
    *,
    frontend_url: str,
    community_name: str = "Parley",
) -> None:
    """Prompt a topic owner to archive their ageing topic."""
    subject = f"[{community_name}] Archive your topic \"{topic_name}\"?"
    body = (
        "Hello,\n\n"
        f"Your topic \"{topic_name}\" is about to expire and will soon be removed.\n"
        "If you would like to keep it, archive it by following this link:\n\n"
        f"{archive_link(frontend_url, topic_id, token)}\n\n"
        "If you are happy to let it expire, you can ignore this email.\n"
    )
    send_email(to, subject, body)
