"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Services commit
through their Unit of Work; those commits only release the session's own
SAVEPOINT and are discarded with the outer transaction.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime

import pytest
from portfolio.core.config import TestingConfig
from portfolio.core.extensions import db as _db  # Flask-SQLAlchemy instance
from portfolio.factory import create_app  # application factory under test
from portfolio.services._shared.ports import (
    InMemoryMailer,
    InMemoryRefreshTokenStore,
    StubTokenProvider,
)
from portfolio.services.session import AuthTokenConfig, SessionService
from sqlalchemy.orm import scoped_session, sessionmaker

# Flask-SQLAlchemy's own app-context scoped session, before any test patches it
FLASK_SCOPED_SESSION = _db.session


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Relational refresh-token store, no Redis, no SMTP.
    - Proxy headers are not trusted.
    """

    LOG_LEVEL = "WARNING"
    USE_PROXYFIX = False
    CORS_ORIGINS = "http://localhost:3030"


class FrozenClock:
    """Callable clock returning a settable instant."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta) -> None:
        self.now = self.now + delta


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Scoped session bound to the shared connection; automatically rolled
        back after each test.

    Notes
    -----
    The connection sits inside a SAVEPOINT, so the session joins it in
    ``create_savepoint`` mode: ``commit()`` / ``rollback()`` issued by the
    code under test only affect the session's inner SAVEPOINT.
    """
    top_trans = connection.begin()
    connection.begin_nested()

    SessionFactory = sessionmaker(bind=connection, future=True, autoflush=False)
    scoped = scoped_session(SessionFactory)

    # Monkey-patch db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield


# -- Session service doubles ---------------------------------------------------
@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 15, 12, 0, tzinfo=UTC))


@pytest.fixture()
def mailer() -> InMemoryMailer:
    return InMemoryMailer()


@pytest.fixture()
def refresh_store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture()
def make_service(clock, mailer, refresh_store):
    """Return a builder of :class:`SessionService` wired to in-memory doubles."""

    def _make(**overrides) -> SessionService:
        cfg = AuthTokenConfig(**overrides)
        return SessionService(
            token_provider=StubTokenProvider(clock=clock),
            refresh_store=refresh_store,
            mailer=mailer,
            token_cfg=cfg,
            clock=clock,
        )

    return _make


@pytest.fixture()
def service(make_service) -> SessionService:
    return make_service()


# -- HTTP ------------------------------------------------------------------------
@pytest.fixture()
def client(app, session, mailer, monkeypatch):
    """Flask test client whose mails land in the ``mailer`` fixture outbox."""
    monkeypatch.setitem(app.extensions, "mailer", mailer)
    return app.test_client()


@pytest.fixture()
def flask_scoped_session():
    """Return the unpatched Flask-SQLAlchemy ``db.session``."""
    return FLASK_SCOPED_SESSION
