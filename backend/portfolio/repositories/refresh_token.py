"""Refresh token repository with conditional (race-safe) revocation."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import select, update

from portfolio.models.refresh_token import RefreshToken
from portfolio.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`."""

    model = RefreshToken

    def _filterable_fields(self):
        return {
            "token": RefreshToken.token,
            "user_id": RefreshToken.user_id,
            "revoked": RefreshToken.revoked,
        }

    def create(self, *, token: str, user_id: int, expires_at: datetime) -> RefreshToken:
        return self.add(RefreshToken(token=token, user_id=user_id, expires_at=expires_at))

    def get_by_token(self, token: str) -> RefreshToken | None:
        stmt = select(RefreshToken).where(RefreshToken.token == token)
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def revoke_if_active(self, token: str, *, active_at: datetime | None = None) -> bool:
        """Revoke ``token`` only if it is not revoked yet (and not expired).

        :param token: Token identifier.
        :param active_at: When given, also require ``expires_at > active_at``.
        :returns: ``True`` if exactly this call flipped the flag.
        :rtype: bool
        """
        conditions = [RefreshToken.token == token, RefreshToken.revoked.is_(False)]
        if active_at is not None:
            conditions.append(RefreshToken.expires_at > active_at)
        stmt = (
            update(RefreshToken)
            .where(*conditions)
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def revoke_all_for_user(self, user_id: int) -> int:
        """Revoke every outstanding token of ``user_id`` in one bulk ``UPDATE``.

        :returns: Number of tokens that were still unrevoked.
        :rtype: int
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def list_for_user(self, user_id: int) -> list[RefreshToken]:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .order_by(RefreshToken.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())
