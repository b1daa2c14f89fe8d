# tests/unit/services/test_session_password_reset.py
from __future__ import annotations

import hashlib
import smtplib
from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time
from portfolio.models.user import User
from portfolio.services._shared.errors import (
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    ValidationError,
)
from portfolio.services._shared.ports import (
    InMemoryMailer,
    InMemoryRefreshTokenStore,
    StubTokenProvider,
)
from portfolio.services.session import (
    LoginIn,
    PasswordResetIn,
    PasswordResetRequestIn,
    RefreshIn,
    SessionService,
)
from tests.factories.user import DEFAULT_PASSWORD, UserFactory

NEW_PASSWORD = "brand-new-secret"


def _request_token(service, mailer, email: str) -> str:
    service.request_password_reset(PasswordResetRequestIn(email=email))
    token = mailer.last_reset_token(email)
    assert token is not None
    return token


# ------------------------------- Request ----------------------------------- #
def test_request_stores_only_the_digest(service, mailer, session, clock):
    user = UserFactory(email="reset@example.com")

    raw = _request_token(service, mailer, "reset@example.com")

    stored = session.get(User, user.id)
    assert len(raw) == 64
    assert stored.reset_password_token == hashlib.sha256(raw.encode()).hexdigest()
    assert stored.reset_password_token != raw
    assert stored.reset_password_expires.replace(tzinfo=UTC) == clock() + timedelta(hours=1)


def test_request_for_unknown_email_is_silent(service, mailer):
    service.request_password_reset(PasswordResetRequestIn(email="ghost@example.com"))

    assert mailer.outbox == []


def test_request_swallows_mail_failures(service, mailer, session, monkeypatch):
    user = UserFactory(email="flaky@example.com")

    def _boom(email, raw_token):
        raise smtplib.SMTPServerDisconnected("gone")

    monkeypatch.setattr(mailer, "send_password_reset_email", _boom)

    service.request_password_reset(PasswordResetRequestIn(email="flaky@example.com"))

    assert session.get(User, user.id).reset_password_token is not None


def test_second_request_replaces_the_first_token(service, mailer):
    UserFactory(email="twice@example.com")
    first = _request_token(service, mailer, "twice@example.com")
    second = _request_token(service, mailer, "twice@example.com")

    assert first != second
    assert service.verify_reset_token(first) is False
    assert service.verify_reset_token(second) is True


# -------------------------------- Consume ---------------------------------- #
def test_reset_changes_password_and_consumes_token(service, mailer):
    user = UserFactory(email="change@example.com")
    raw = _request_token(service, mailer, user.email)

    service.reset_password(PasswordResetIn(token=raw, new_password=NEW_PASSWORD))

    assert service.login(LoginIn(email="change@example.com", password=NEW_PASSWORD))
    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(email="change@example.com", password=DEFAULT_PASSWORD))
    with pytest.raises(InvalidOrExpiredTokenError):
        service.reset_password(PasswordResetIn(token=raw, new_password="another-secret"))
    assert [m.kind for m in mailer.outbox] == ["password_reset", "password_reset_confirmation"]


def test_reset_clears_token_fields(service, mailer, session):
    user = UserFactory()
    raw = _request_token(service, mailer, user.email)

    service.reset_password(PasswordResetIn(token=raw, new_password=NEW_PASSWORD))

    stored = session.get(User, user.id)
    assert stored.reset_password_token is None
    assert stored.reset_password_expires is None


def test_reset_with_unknown_token(service):
    with pytest.raises(InvalidOrExpiredTokenError):
        service.reset_password(PasswordResetIn(token="0" * 64, new_password=NEW_PASSWORD))


def test_reset_token_failure_is_an_invalid_token_error(service):
    with pytest.raises(InvalidTokenError):
        service.reset_password(PasswordResetIn(token="", new_password=NEW_PASSWORD))


@pytest.mark.parametrize("password", ["short", "x" * 129])
def test_reset_rejects_password_outside_policy(service, mailer, password):
    user = UserFactory()
    raw = _request_token(service, mailer, user.email)

    with pytest.raises(ValidationError):
        service.reset_password(PasswordResetIn(token=raw, new_password=password))

    # The token was not consumed
    assert service.verify_reset_token(raw) is True


def test_reset_token_is_expired_at_its_expiry_instant(service, mailer, clock):
    user = UserFactory()
    raw = _request_token(service, mailer, user.email)

    clock.advance(timedelta(hours=1))

    assert service.verify_reset_token(raw) is False
    with pytest.raises(InvalidOrExpiredTokenError):
        service.reset_password(PasswordResetIn(token=raw, new_password=NEW_PASSWORD))


def test_reset_token_valid_just_before_expiry(service, mailer, clock):
    user = UserFactory()
    raw = _request_token(service, mailer, user.email)

    clock.advance(timedelta(hours=1) - timedelta(seconds=1))

    service.reset_password(PasswordResetIn(token=raw, new_password=NEW_PASSWORD))


def test_expiry_boundary_with_wall_clock():
    user = UserFactory()
    mailer = InMemoryMailer()
    service = SessionService(
        token_provider=StubTokenProvider(),
        refresh_store=InMemoryRefreshTokenStore(),
        mailer=mailer,
    )

    with freeze_time(datetime(2026, 3, 1, 9, 30, tzinfo=UTC)) as frozen:
        raw = _request_token(service, mailer, user.email)
        frozen.tick(timedelta(minutes=59, seconds=59))
        assert service.verify_reset_token(raw) is True
        frozen.tick(timedelta(seconds=1))
        assert service.verify_reset_token(raw) is False


# ------------------------- Sessions after a reset -------------------------- #
def test_reset_revokes_refresh_tokens_by_default(service, mailer):
    user = UserFactory()
    session_pair = service.login(LoginIn(email=user.email, password=DEFAULT_PASSWORD))
    raw = _request_token(service, mailer, user.email)

    service.reset_password(PasswordResetIn(token=raw, new_password=NEW_PASSWORD))

    with pytest.raises(InvalidTokenError):
        service.refresh_access_token(RefreshIn(refresh_token=session_pair.refresh_token))


def test_reset_can_keep_refresh_tokens(make_service, mailer):
    service = make_service(revoke_sessions_on_reset=False)
    user = UserFactory()
    session_pair = service.login(LoginIn(email=user.email, password=DEFAULT_PASSWORD))
    raw = _request_token(service, mailer, user.email)

    service.reset_password(PasswordResetIn(token=raw, new_password=NEW_PASSWORD))

    assert service.refresh_access_token(RefreshIn(refresh_token=session_pair.refresh_token))


# -------------------------------- Verify ----------------------------------- #
def test_verify_reset_token_does_not_consume(service, mailer):
    user = UserFactory()
    raw = _request_token(service, mailer, user.email)

    assert service.verify_reset_token(raw) is True
    assert service.verify_reset_token(raw) is True
    assert service.verify_reset_token("nope") is False
    assert service.verify_reset_token("") is False
