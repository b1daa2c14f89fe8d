"""Tests for :class:`portfolio.repositories.user.UserRepository`."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from portfolio.repositories.user import UserRepository, normalize_email
from sqlalchemy import text
from tests.factories.user import DEFAULT_PASSWORD, UserFactory

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture()
def repo(session) -> UserRepository:
    return UserRepository(session=session)


def test_normalize_email():
    assert normalize_email("  Foo@Bar.COM ") == "foo@bar.com"


def test_get_by_email_is_case_insensitive(repo):
    user = UserFactory(email="mixed@example.com")

    assert repo.get_by_email("MIXED@example.com") is user
    assert repo.exists_by_email(" mixed@EXAMPLE.com ") is True
    assert repo.get_by_email("other@example.com") is None


def test_authenticate(repo):
    user = UserFactory()

    assert repo.authenticate(user.email, DEFAULT_PASSWORD) is user
    assert repo.authenticate(user.email, "wrong-password") is None
    assert repo.authenticate("ghost@example.com", DEFAULT_PASSWORD) is None


def test_find_one_rejects_unknown_filters(repo):
    with pytest.raises(ValueError):
        repo.find_one(password_hash="x")


def test_assign_updates_whitelist(repo):
    user = UserFactory()

    repo.assign_updates(user, {"role": "admin"})
    assert user.role == "admin"

    with pytest.raises(ValueError):
        repo.assign_updates(user, {"reset_password_token": "x"})


def test_consume_reset_token_once(repo, session):
    user = UserFactory()
    repo.set_reset_token(user, "a" * 64, NOW + timedelta(hours=1))
    session.commit()

    assert repo.consume_reset_token("a" * 64, NOW) is user
    assert user.reset_password_token is None
    session.commit()

    assert repo.consume_reset_token("a" * 64, NOW) is None


def test_consume_reset_token_rejects_expired(repo, session):
    user = UserFactory()
    repo.set_reset_token(user, "b" * 64, NOW)
    session.commit()

    assert repo.consume_reset_token("b" * 64, NOW) is None
    assert repo.find_by_reset_token("b" * 64) is user


def test_consume_reset_token_loses_race(repo, session):
    user = UserFactory()
    repo.set_reset_token(user, "c" * 64, NOW + timedelta(hours=1))
    session.commit()

    # Another request clears the column between the lookup and the update
    original = repo.find_by_reset_token

    def _lookup_then_race(digest):
        found = original(digest)
        session.execute(
            text("UPDATE users SET reset_password_token = NULL WHERE id = :id"), {"id": user.id}
        )
        return found

    repo.find_by_reset_token = _lookup_then_race

    assert repo.consume_reset_token("c" * 64, NOW) is None
