"""
SQLAlchemy implementations of UnitOfWork for Flask.
"""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import Session

from portfolio.core.extensions import db
from portfolio.repositories import RefreshTokenRepository, UserRepository
from portfolio.uow.base import UnitOfWork


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=self.session)
        self.refresh_tokens = RefreshTokenRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-write UoW using the Flask-scoped session.

    Commits when the block exits cleanly, rolls back otherwise.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # No-op: the session is lazily started on the first statement.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only UoW backed by the Flask-scoped session.

    A ``before_flush`` guard rejects any pending ORM write and ``commit()`` is
    disallowed. When the scope starts the transaction it also ends it with a
    rollback; when a transaction is already running (an outer fixture or an
    earlier flush) it attaches to it and leaves it untouched. Values read
    inside the block should be copied out before leaving it: the rollback
    expires loaded instances.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)
        self._guard_installed = False
        self._owns_txn = False
        self._target: Session | None = None

    @staticmethod
    def _before_flush(session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError(
                "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
            )

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        # Work on this thread's Session; the scoped registry proxies neither
        # in_transaction() nor event targets.
        self._target = self.session()
        self._owns_txn = not self._target.in_transaction()
        event.listen(self._target, "before_flush", self._before_flush)
        self._guard_installed = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._owns_txn:
                self.rollback()
        finally:
            if self._guard_installed:
                event.remove(self._target, "before_flush", self._before_flush)
                self._guard_installed = False

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always, to prevent accidental writes.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()
