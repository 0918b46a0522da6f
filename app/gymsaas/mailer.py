"""
Outbound email over SMTP.

With MAIL_ENABLED off (the default outside production) messages are not sent;
they are logged and appended to app.extensions["mail_outbox"] so the dashboard
and tests can see what would have gone out.
"""
from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    body: str
    html: str | None = None


def outbox() -> list[OutgoingEmail]:
    return current_app.extensions.setdefault("mail_outbox", [])


def _build_message(email: OutgoingEmail, email_from: str) -> MIMEText | MIMEMultipart:
    if email.html:
        msg: MIMEText | MIMEMultipart = MIMEMultipart("alternative")
        msg.attach(MIMEText(email.body, "plain"))
        msg.attach(MIMEText(email.html, "html"))
    else:
        msg = MIMEText(email.body, "plain")
    msg["Subject"] = email.subject
    msg["From"] = email_from
    msg["To"] = email.to
    return msg


def send_email(to: str, subject: str, body: str, *, html: str | None = None) -> tuple[bool, str]:
    """
    Send one email using SMTP configuration from app.config.

    Returns (success, message); never raises for SMTP problems so callers can keep
    going through a batch.
    """
    cfg = current_app.config
    email = OutgoingEmail(to=to, subject=subject, body=body, html=html)

    if not cfg.get("MAIL_ENABLED"):
        outbox().append(email)
        logger.info("Mail disabled; recorded email to=%s subject=%r", to, subject)
        return True, "recorded"

    smtp_server = (cfg.get("SMTP_SERVER") or "").strip()
    email_from = (cfg.get("EMAIL_FROM") or "").strip()
    if not smtp_server:
        logger.error("SMTP server not configured (SMTP_SERVER missing); cannot email %s", to)
        return False, "SMTP server not configured"
    if not email_from:
        logger.error("EMAIL_FROM not configured; cannot email %s", to)
        return False, "Email from address not configured"

    msg = _build_message(email, email_from)
    try:
        port = int(cfg.get("SMTP_PORT") or 587)
        with smtplib.SMTP(smtp_server, port, timeout=30) as server:
            if cfg.get("SMTP_USE_TLS", True):
                server.starttls()
            username = (cfg.get("SMTP_USERNAME") or "").strip()
            password = cfg.get("SMTP_PASSWORD") or ""
            if username and password:
                server.login(username, password)
            server.send_message(msg)
    except smtplib.SMTPAuthenticationError as e:
        logger.error("SMTP authentication failed sending to %s: %s", to, e)
        return False, f"SMTP authentication failed: {e}"
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("SMTP error sending to %s", to)
        return False, f"SMTP error: {e}"

    logger.info("Sent email to=%s subject=%r", to, subject)
    return True, "sent"
