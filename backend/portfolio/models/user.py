"""User model: the credential record of the site operator and other accounts."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import CheckConstraint, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from werkzeug.security import check_password_hash, generate_password_hash

from portfolio.core.clock import as_utc
from portfolio.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


class Role(str, enum.Enum):
    """Account roles. ``admin`` manages content; ``user`` is read-mostly."""

    ADMIN = "admin"
    USER = "user"


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Authentication identity.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed).
    password_hash : str
        Salted one-way hash; only written through :meth:`set_password`.
    role : str
        One of :class:`Role` values.
    reset_password_token : str | None
        SHA-256 hex digest of the outstanding password reset token.
    reset_password_expires : datetime | None
        Instant at which the reset token stops being valid.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=Role.USER.value)
    reset_password_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reset_password_expires: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        CheckConstraint("role IN ('admin', 'user')", name="role_valid"),
        Index("ix_users_reset_password_token", "reset_password_token"),
    )

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - explicit write-only contract
        """
        Disallow reading passwords.

        :raises AttributeError: Always, to ensure password is write-only.
        """
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        self.set_password(raw)

    def set_password(self, raw: str) -> None:
        """
        Hash and store a new password. Always hashes; never inspects ``raw``.

        :param raw: Plain text password.
        :type raw: str
        :raises ValueError: If ``raw`` is empty or not a string.
        """
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        """
        Verify a password against the stored hash (constant-time compare).

        :param raw: Plain text password candidate.
        :type raw: str
        :returns: ``True`` if it matches; otherwise ``False``.
        :rtype: bool
        """
        if not self.password_hash:
            return False
        return bool(check_password_hash(self.password_hash, raw))

    # -------------------- Reset token --------------------
    def has_valid_reset_token(self, now: datetime) -> bool:
        """Return ``True`` while a reset token is stored and ``now`` is before its expiry."""
        if not self.reset_password_token or self.reset_password_expires is None:
            return False
        return as_utc(self.reset_password_expires) > now

    def clear_reset_token(self) -> None:
        self.reset_password_token = None
        self.reset_password_expires = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("role")
    def _validate_role(self, key: str, value: str | Role) -> str:
        v = value.value if isinstance(value, Role) else str(value)
        if v not in {r.value for r in Role}:
            raise ValueError(f"Unknown role: {v!r}.")
        return v
