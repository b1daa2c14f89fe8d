"""Tests for :class:`portfolio.repositories.refresh_token.RefreshTokenRepository`."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from portfolio.repositories.refresh_token import RefreshTokenRepository
from tests.factories.refresh_token import RefreshTokenFactory
from tests.factories.user import UserFactory


@pytest.fixture()
def repo(session) -> RefreshTokenRepository:
    return RefreshTokenRepository(session=session)


def _now() -> datetime:
    return datetime.now(UTC)


def test_create_and_get_by_token(repo, session):
    user = UserFactory()
    row = repo.create(token="t" * 64, user_id=user.id, expires_at=_now() + timedelta(days=1))
    session.commit()

    assert row.id is not None
    assert repo.get_by_token("t" * 64) is row
    assert repo.get_by_token("missing") is None


def test_revoke_if_active_flips_once(repo, session):
    rt = RefreshTokenFactory()

    assert repo.revoke_if_active(rt.token) is True
    assert repo.revoke_if_active(rt.token) is False
    session.commit()
    session.refresh(rt)
    assert rt.revoked is True


def test_revoke_if_active_respects_expiry(repo):
    rt = RefreshTokenFactory(expires_at=_now() - timedelta(seconds=1))

    assert repo.revoke_if_active(rt.token, active_at=_now()) is False
    # Without an instant the expired row is still revocable (logout path)
    assert repo.revoke_if_active(rt.token) is True


def test_revoke_all_for_user(repo, session):
    user = UserFactory()
    other = UserFactory()
    RefreshTokenFactory.create_batch(2, user=user)
    RefreshTokenFactory(user=user, revoked=True)
    foreign = RefreshTokenFactory(user=other)

    assert repo.revoke_all_for_user(user.id) == 2
    session.commit()

    rows = repo.list_for_user(user.id)
    assert len(rows) == 3
    for row in rows:
        session.refresh(row)
        assert row.revoked is True
    session.refresh(foreign)
    assert foreign.revoked is False
