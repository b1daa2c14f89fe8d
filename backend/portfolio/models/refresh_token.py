"""Refresh token model: one row per issued refresh JWT (keyed by its ``jti``)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portfolio.core.clock import as_utc
from portfolio.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin


class RefreshToken(PKMixin, ReprMixin, CreatedAtMixin, db.Model):
    """
    Persisted, revocable refresh session.

    Fields
    ------
    token : str
        Opaque random identifier, embedded as the ``jti`` claim of the
        refresh JWT handed to the client.
    user_id : int
        Owning user.
    expires_at : datetime
        Absolute expiry (UTC).
    revoked : bool
        Set on logout, rotation or bulk revocation; never cleared.
    """

    __tablename__ = "refresh_tokens"

    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (Index("ix_refresh_tokens_user_id_revoked", "user_id", "revoked"),)

    def is_active(self, now: datetime) -> bool:
        """Return ``True`` if the token is neither revoked nor expired at ``now``."""
        return not self.revoked and as_utc(self.expires_at) > now
