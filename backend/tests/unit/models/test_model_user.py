"""Tests for the User model."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from portfolio.models.user import Role, User
from sqlalchemy.exc import IntegrityError


class TestUser:
    def test_password_hashing(self, session):
        u = User(email="Test@Example.com")
        u.password = "secret123"
        session.add(u)
        session.commit()
        assert u.password_hash != "secret123"
        assert u.verify_password("secret123") is True
        assert u.verify_password("wrong") is False

    def test_password_is_write_only(self):
        u = User(email="a@example.com")
        u.password = "x"
        with pytest.raises(AttributeError):
            _ = u.password

    def test_set_password_always_hashes(self):
        # A value shaped like a hash is still treated as a raw password
        u = User(email="h@example.com")
        u.set_password("scrypt:32768:8:1$abc$def")
        assert u.password_hash != "scrypt:32768:8:1$abc$def"
        assert u.verify_password("scrypt:32768:8:1$abc$def") is True

    def test_set_password_rejects_empty(self):
        with pytest.raises(ValueError):
            User(email="e@example.com").set_password("")

    def test_email_normalized_and_unique(self, session):
        u1 = User(email="  Alice@Example.com ")
        u1.password = "pw"
        session.add(u1)
        session.commit()
        assert u1.email == "alice@example.com"

        u2 = User(email="alice@example.com")
        u2.password = "pw"
        session.add(u2)
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_basic_validations(self):
        with pytest.raises(ValueError):
            User(email="")
        with pytest.raises(ValueError):
            User(email="no-at-sign")
        with pytest.raises(ValueError):
            User(email="x@example.com", role="root")

    def test_role_defaults_to_user(self, session):
        u = User(email="r@example.com")
        u.password = "pw"
        session.add(u)
        session.commit()
        assert u.role == Role.USER.value
        assert u.is_admin is False
        assert User(email="adm@example.com", role=Role.ADMIN).role == "admin"

    def test_reset_token_validity_window(self):
        now = datetime(2026, 1, 1, 12, tzinfo=UTC)
        u = User(email="t@example.com")
        assert u.has_valid_reset_token(now) is False

        u.reset_password_token = "f" * 64
        u.reset_password_expires = now + timedelta(minutes=1)
        assert u.has_valid_reset_token(now) is True
        assert u.has_valid_reset_token(now + timedelta(minutes=1)) is False

        # Naive values (as SQLite returns them) are read as UTC
        u.reset_password_expires = datetime(2026, 1, 1, 12, 1)
        assert u.has_valid_reset_token(now) is True

        u.clear_reset_token()
        assert u.reset_password_token is None
        assert u.reset_password_expires is None
