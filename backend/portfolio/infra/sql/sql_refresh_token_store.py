from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from portfolio.core.clock import as_utc
from portfolio.models.refresh_token import RefreshToken
from portfolio.services._shared.ports import (
    RefreshTokenStore,
    RefreshTokenView,
    new_refresh_token_id,
)
from portfolio.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


def _to_view(row: RefreshToken) -> RefreshTokenView:
    return RefreshTokenView(
        token=row.token,
        user_id=row.user_id,
        expires_at=as_utc(row.expires_at),
        revoked=bool(row.revoked),
        created_at=as_utc(row.created_at) if row.created_at else None,
    )


@dataclass(slots=True)
class SQLRefreshTokenStore(RefreshTokenStore):
    """
    Relational refresh token store (``refresh_tokens`` table).

    Every call runs in its own read-write Unit of Work so a record is
    committed before the caller hands the signed token out.
    """

    def new_token(self) -> str:
        return new_refresh_token_id()

    def create(self, *, token: str, user_id: int, expires_at: datetime) -> RefreshTokenView:
        with SQLAlchemyUnitOfWork() as uow:
            row = uow.refresh_tokens.create(
                token=token, user_id=user_id, expires_at=as_utc(expires_at)
            )
            view = _to_view(row)
        return view

    def find_by_token(self, token: str) -> RefreshTokenView | None:
        with SQLAlchemyUnitOfWork() as uow:
            row = uow.refresh_tokens.get_by_token(token)
            view = _to_view(row) if row is not None else None
        return view

    def revoke(self, token: str, *, active_at: datetime | None = None) -> bool:
        """Single conditional ``UPDATE``; the row count decides the winner."""
        with SQLAlchemyUnitOfWork() as uow:
            changed = uow.refresh_tokens.revoke_if_active(token, active_at=active_at)
        return changed

    def revoke_all_for_user(self, user_id: int) -> int:
        with SQLAlchemyUnitOfWork() as uow:
            count = uow.refresh_tokens.revoke_all_for_user(user_id)
        return count
