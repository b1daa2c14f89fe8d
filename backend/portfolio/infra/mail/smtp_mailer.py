from __future__ import annotations

import logging
import smtplib
import ssl
from collections.abc import Mapping
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any
from urllib.parse import urlencode

from portfolio.services._shared.ports import Mailer

log = logging.getLogger(__name__)

RESET_SUBJECT = "Password Reset Request"
CONFIRMATION_SUBJECT = "Password Reset Successful"


def redact_email(email: str) -> str:
    """Redact an email address for logging to avoid PII leakage."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


def reset_link(frontend_url: str, raw_token: str) -> str:
    return f"{frontend_url.rstrip('/')}/reset-password?{urlencode({'token': raw_token})}"


def _reset_bodies(link: str, expires_minutes: int) -> tuple[str, str]:
    text = (
        "You requested a password reset.\n\n"
        f"Open this link to choose a new password:\n{link}\n\n"
        f"The link expires in {expires_minutes} minutes. "
        "If you did not request it, ignore this email."
    )
    html = (
        "<p>You requested a password reset.</p>"
        f'<p><a href="{link}">Reset your password</a></p>'
        f"<p>The link expires in {expires_minutes} minutes. "
        "If you did not request it, ignore this email.</p>"
    )
    return text, html


def _confirmation_bodies() -> tuple[str, str]:
    text = (
        "Your password has been changed.\n\n"
        "If you did not make this change, contact the site owner immediately."
    )
    html = (
        "<p>Your password has been changed.</p>"
        "<p>If you did not make this change, contact the site owner immediately.</p>"
    )
    return text, html


@dataclass(slots=True)
class SMTPMailer(Mailer):
    """
    Deliver the password reset mails over SMTP.

    ``use_tls=True`` connects in clear and upgrades with STARTTLS; otherwise an
    implicit-TLS (``SMTP_SSL``) connection is used. Delivery errors propagate
    to the caller.
    """

    host: str
    port: int
    from_email: str
    frontend_url: str
    user: str | None = None
    password: str | None = None
    use_tls: bool = True
    from_name: str = "Portfolio Website"
    reset_expires_minutes: int = 60
    timeout: float = 30.0

    def _message(self, to_email: str, subject: str, text: str, html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))
        return msg

    def _send(self, to_email: str, subject: str, text: str, html: str) -> None:
        msg = self._message(to_email, subject, text, html)
        context = ssl.create_default_context()
        log.debug(
            "mail.connecting host=%s port=%s tls=%s to=%s",
            self.host,
            self.port,
            self.use_tls,
            redact_email(to_email),
        )
        if self.use_tls:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls(context=context)
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.from_email, [to_email], msg.as_string())
        else:
            with smtplib.SMTP_SSL(
                self.host, self.port, context=context, timeout=self.timeout
            ) as server:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.from_email, [to_email], msg.as_string())
        log.info("mail.sent subject=%r to=%s", subject, redact_email(to_email))

    def send_password_reset_email(self, email: str, raw_token: str) -> None:
        text, html = _reset_bodies(
            reset_link(self.frontend_url, raw_token), self.reset_expires_minutes
        )
        self._send(email, RESET_SUBJECT, text, html)

    def send_password_reset_confirmation(self, email: str) -> None:
        text, html = _confirmation_bodies()
        self._send(email, CONFIRMATION_SUBJECT, text, html)


class LoggingMailer(Mailer):
    """Development fallback used when no SMTP host is configured: logs instead of sending."""

    def __init__(self, frontend_url: str) -> None:
        self.frontend_url = frontend_url

    def send_password_reset_email(self, email: str, raw_token: str) -> None:
        # The link carries a live credential; only emitted at DEBUG level.
        log.info("mail.dev subject=%r to=%s", RESET_SUBJECT, redact_email(email))
        log.debug("mail.dev.link %s", reset_link(self.frontend_url, raw_token))

    def send_password_reset_confirmation(self, email: str) -> None:
        log.info("mail.dev subject=%r to=%s", CONFIRMATION_SUBJECT, redact_email(email))


def build_mailer(config: Mapping[str, Any]) -> Mailer:
    """
    Build the mailer for the given Flask configuration.

    :param config: Flask ``app.config`` (or any mapping with the ``SMTP_*`` keys).
    :returns: :class:`SMTPMailer` when ``SMTP_HOST`` is set, else :class:`LoggingMailer`.
    """
    frontend_url = config.get("FRONTEND_URL") or "http://localhost:3030"
    host = config.get("SMTP_HOST")
    if not host:
        return LoggingMailer(frontend_url)

    reset_expires = config.get("PASSWORD_RESET_EXPIRES")
    minutes = int(reset_expires.total_seconds() // 60) if reset_expires else 60
    return SMTPMailer(
        host=host,
        port=int(config.get("SMTP_PORT") or 587),
        user=config.get("SMTP_USER"),
        password=config.get("SMTP_PASSWORD"),
        use_tls=bool(config.get("SMTP_USE_TLS", True)),
        from_email=config.get("EMAIL_FROM") or "noreply@example.com",
        from_name=config.get("EMAIL_FROM_NAME") or "Portfolio Website",
        frontend_url=frontend_url,
        reset_expires_minutes=minutes,
    )
