from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol


class Mailer(Protocol):
    """Port for the transactional mails of the password reset flow."""

    def send_password_reset_email(self, email: str, raw_token: str) -> None:
        """Send the reset link carrying ``raw_token`` to ``email``."""
        ...

    def send_password_reset_confirmation(self, email: str) -> None:
        """Tell ``email`` that its password has just been changed."""
        ...


@dataclass(frozen=True)
class SentMail:
    kind: str
    to: str
    token: str | None = None


class InMemoryMailer(Mailer):
    """Mailer that records messages instead of delivering them (tests, local runs)."""

    def __init__(self) -> None:
        self.outbox: list[SentMail] = []
        self._lock = threading.Lock()

    def send_password_reset_email(self, email: str, raw_token: str) -> None:
        with self._lock:
            self.outbox.append(SentMail(kind="password_reset", to=email, token=raw_token))

    def send_password_reset_confirmation(self, email: str) -> None:
        with self._lock:
            self.outbox.append(SentMail(kind="password_reset_confirmation", to=email))

    def last_reset_token(self, email: str) -> str | None:
        """Return the raw token of the most recent reset mail sent to ``email``."""
        for mail in reversed(self.outbox):
            if mail.kind == "password_reset" and mail.to == email:
                return mail.token
        return None
