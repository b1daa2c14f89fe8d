"""User repository for persistence and credential utilities."""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import cast

from sqlalchemy import select, update
from werkzeug.security import check_password_hash, generate_password_hash

from portfolio.models.user import User
from portfolio.repositories.base import BaseRepository


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    """Hash verified for unknown emails so both login failures cost the same."""
    return generate_password_hash("portfolio-dummy-password")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER issues tokens; it only looks up and mutates credential state.
    """

    model = User

    def _filterable_fields(self):
        return {"email": User.email, "role": User.role}

    def _updatable_fields(self):
        # Passwords and reset state have dedicated methods.
        return {"email", "role"}

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (normalized the same way it is stored).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == normalize_email(email))
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == normalize_email(email))
        return self.session.execute(stmt).first() is not None

    def authenticate(self, email: str, password: str) -> User | None:
        """Authenticate a user by email and password.

        Unknown emails still pay for one hash verification, so callers cannot
        tell "no such user" from "wrong password" by timing.

        :returns: Authenticated user or ``None`` when credentials fail.
        :rtype: User | None
        """
        user = self.get_by_email(email)
        if user is None:
            check_password_hash(_dummy_password_hash(), password)
            return None
        if not user.verify_password(password):
            return None
        return user

    # ---------------------------- Reset tokens ----------------------------

    def set_reset_token(self, user: User, token_digest: str, expires_at: datetime) -> None:
        """Store a reset token digest and its expiry on ``user`` and flush."""
        user.reset_password_token = token_digest
        user.reset_password_expires = expires_at
        self.flush()

    def find_by_reset_token(self, token_digest: str) -> User | None:
        stmt = select(User).where(User.reset_password_token == token_digest)
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def consume_reset_token(self, token_digest: str, now: datetime) -> User | None:
        """Atomically clear a matching, unexpired reset token.

        The clear is a single conditional ``UPDATE``; when two requests race
        on the same token only one of them affects a row.

        :param token_digest: SHA-256 hex digest of the presented token.
        :param now: Current instant; tokens expiring exactly at ``now`` are
            already invalid.
        :returns: The owning user when the token was consumed, else ``None``.
        :rtype: User | None
        """
        user = self.find_by_reset_token(token_digest)
        if user is None:
            return None
        stmt = (
            update(User)
            .where(
                User.id == user.id,
                User.reset_password_token == token_digest,
                User.reset_password_expires > now,
            )
            .values(reset_password_token=None, reset_password_expires=None)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            return None
        user.clear_reset_token()
        return user
