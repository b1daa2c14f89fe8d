"""Unit tests for the mail adapters."""

from __future__ import annotations

import logging
from datetime import timedelta
from email import message_from_string

import pytest
from portfolio.infra.mail import smtp_mailer
from portfolio.infra.mail.smtp_mailer import (
    LoggingMailer,
    SMTPMailer,
    build_mailer,
    redact_email,
    reset_link,
)


class FakeSMTP:
    """Records the calls a mailer makes on an SMTP connection."""

    instances: list[FakeSMTP] = []

    def __init__(self, host, port, **kwargs):
        self.host = host
        self.port = port
        self.kwargs = kwargs
        self.calls: list[str] = []
        self.sent: list[tuple[str, list[str], str]] = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(f"login:{user}")

    def sendmail(self, from_addr, to_addrs, msg):
        self.sent.append((from_addr, to_addrs, msg))


@pytest.fixture(autouse=True)
def _fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(smtp_mailer.smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(smtp_mailer.smtplib, "SMTP_SSL", FakeSMTP)


def _mailer(**overrides) -> SMTPMailer:
    params = {
        "host": "smtp.example.com",
        "port": 587,
        "from_email": "noreply@example.com",
        "frontend_url": "https://site.example/",
        "user": "mailer",
        "password": "secret",
    }
    params.update(overrides)
    return SMTPMailer(**params)


def test_redact_email():
    assert redact_email("alice@example.com") == "al***@example.com"
    assert redact_email("broken") == "redacted"


def test_reset_link_encodes_token():
    assert reset_link("https://site.example/", "a+b") == (
        "https://site.example/reset-password?token=a%2Bb"
    )


def test_reset_email_over_starttls():
    _mailer().send_password_reset_email("user@example.com", "raw-token")

    (conn,) = FakeSMTP.instances
    assert conn.calls == ["starttls", "login:mailer"]
    from_addr, to_addrs, raw = conn.sent[0]
    assert from_addr == "noreply@example.com"
    assert to_addrs == ["user@example.com"]
    msg = message_from_string(raw)
    assert msg["Subject"] == "Password Reset Request"
    body = msg.get_payload()[0].get_payload(decode=True).decode()
    assert "https://site.example/reset-password?token=raw-token" in body


def test_confirmation_over_implicit_tls_without_login():
    _mailer(use_tls=False, port=465, user=None).send_password_reset_confirmation("u@example.com")

    (conn,) = FakeSMTP.instances
    assert conn.port == 465
    assert conn.calls == []
    msg = message_from_string(conn.sent[0][2])
    assert msg["Subject"] == "Password Reset Successful"


def test_delivery_errors_propagate(monkeypatch):
    def _refuse(*args, **kwargs):
        raise ConnectionRefusedError("no server")

    monkeypatch.setattr(smtp_mailer.smtplib, "SMTP", _refuse)

    with pytest.raises(OSError):
        _mailer().send_password_reset_confirmation("u@example.com")


def test_logging_mailer_keeps_token_out_of_info_logs(caplog):
    mailer = LoggingMailer("http://localhost:3030")

    with caplog.at_level(logging.INFO, logger=smtp_mailer.__name__):
        mailer.send_password_reset_email("owner@example.com", "sensitive-token")

    assert "ow***@example.com" in caplog.text
    assert "sensitive-token" not in caplog.text


def test_build_mailer_without_host_logs_only():
    assert isinstance(build_mailer({"SMTP_HOST": None}), LoggingMailer)


def test_build_mailer_with_host():
    mailer = build_mailer(
        {
            "SMTP_HOST": "smtp.example.com",
            "SMTP_PORT": 2525,
            "SMTP_USE_TLS": False,
            "EMAIL_FROM": "me@example.com",
            "FRONTEND_URL": "https://site.example",
            "PASSWORD_RESET_EXPIRES": timedelta(minutes=30),
        }
    )

    assert isinstance(mailer, SMTPMailer)
    assert mailer.port == 2525
    assert mailer.use_tls is False
    assert mailer.reset_expires_minutes == 30
    assert mailer.from_name == "Portfolio Website"
