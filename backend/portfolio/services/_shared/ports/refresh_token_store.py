from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from portfolio.core.clock import as_utc, utcnow


def new_refresh_token_id() -> str:
    """Return a fresh opaque refresh token identifier (64 hex chars)."""
    return secrets.token_hex(32)


@dataclass(frozen=True)
class RefreshTokenView:
    """
    Read-model for a persisted refresh token.

    :ivar token: Opaque identifier, embedded as the ``jti`` of the signed token.
    :ivar user_id: Owner user id.
    :ivar expires_at: Absolute expiration (UTC).
    :ivar revoked: Whether the token has been revoked (logout or rotation).
    :ivar created_at: Issuance instant (UTC), when known.
    """

    token: str
    user_id: int
    expires_at: datetime
    revoked: bool
    created_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        return not self.revoked and as_utc(self.expires_at) > now


class RefreshTokenStore(Protocol):
    """
    Stateful store for refresh tokens.

    ``revoke`` MUST be atomic: of two concurrent callers revoking the same
    active token exactly one observes ``True``.
    """

    def new_token(self) -> str:
        """Generate a new random refresh token identifier."""
        ...

    def create(self, *, token: str, user_id: int, expires_at: datetime) -> RefreshTokenView:
        """
        Persist a brand-new, unrevoked token.

        This MUST be executed *before* the signed token is handed to the client.
        """
        ...

    def find_by_token(self, token: str) -> RefreshTokenView | None:
        """Fetch a single token snapshot (if present)."""
        ...

    def revoke(self, token: str, *, active_at: datetime | None = None) -> bool:
        """
        Conditionally revoke ``token``.

        :param active_at: When given, the token must also be unexpired at
            that instant for the revoke to apply.
        :returns: ``True`` only if this call flipped the token to revoked.
        """
        ...

    def revoke_all_for_user(self, user_id: int) -> int:
        """
        Revoke all outstanding tokens of the given user.

        :returns: Number of tokens affected.
        """
        ...


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh token store.

    .. note::
       Uses a threading lock to make each read-modify-write atomic.
    """

    def __init__(self) -> None:
        self._by_token: dict[str, RefreshTokenView] = {}
        self._by_user: dict[int, set[str]] = {}
        self._lock = threading.Lock()

    def new_token(self) -> str:
        return new_refresh_token_id()

    def create(self, *, token: str, user_id: int, expires_at: datetime) -> RefreshTokenView:
        view = RefreshTokenView(
            token=token,
            user_id=int(user_id),
            expires_at=as_utc(expires_at),
            revoked=False,
            created_at=utcnow(),
        )
        with self._lock:
            if token in self._by_token:
                raise ValueError("Refresh token already exists.")
            self._by_token[token] = view
            self._by_user.setdefault(view.user_id, set()).add(token)
        return view

    def find_by_token(self, token: str) -> RefreshTokenView | None:
        with self._lock:
            return self._by_token.get(token)

    def revoke(self, token: str, *, active_at: datetime | None = None) -> bool:
        with self._lock:
            view = self._by_token.get(token)
            if view is None or view.revoked:
                return False
            if active_at is not None and view.expires_at <= active_at:
                return False
            self._by_token[token] = replace(view, revoked=True)
            return True

    def revoke_all_for_user(self, user_id: int) -> int:
        count = 0
        with self._lock:
            for token in self._by_user.get(int(user_id), set()):
                view = self._by_token[token]
                if not view.revoked:
                    self._by_token[token] = replace(view, revoked=True)
                    count += 1
        return count
