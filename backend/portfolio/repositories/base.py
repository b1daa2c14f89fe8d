"""Generic repository base for SQLAlchemy 2.x.

Repositories are persistence-only:

- no business logic,
- no commit/rollback (services own the Unit of Work),
- explicit, whitelisted updates (no mass-assignment).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, and_, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from portfolio.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Generic, persistence-only repository for a single aggregate.

    Subclasses MUST define ``model`` and MAY override
    ``_filterable_fields`` / ``_updatable_fields`` whitelists.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """Initialise the repository with an optional SQLAlchemy session.

        When no explicit session is provided the repository falls back to the
        Flask-scoped session exposed by ``portfolio.core.extensions``.

        :param session: Session shared across the Unit of Work scope.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """Return the injected session, or the Flask-scoped one."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    # ------------------------------ Whitelists -------------------------------

    def _filterable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        """Public key → ORM attribute mapping usable in :meth:`find_one`."""
        return {}

    def _updatable_fields(self) -> set[str]:
        """Keys that :meth:`assign_updates` may set. Empty means fail-closed."""
        return set()

    def _where(self, stmt: Select[Any], filters: Mapping[str, Any]) -> Select[Any]:
        allowed = self._filterable_fields()
        unknown = [k for k in filters if k not in allowed]
        if unknown:
            raise ValueError(f"Unknown or non-filterable fields: {unknown}")
        clauses = [allowed[k] == v for k, v in filters.items()]
        return stmt.where(and_(*clauses)) if clauses else stmt

    # --------------------------------- CRUD ----------------------------------

    def add(self, instance: E) -> E:
        """Stage a new entity and flush to materialize the PK.

        :param instance: New entity instance.
        :type instance: E
        :returns: The same instance after ``flush()``.
        :rtype: E
        """
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        """Retrieve a single entity by primary key.

        :param entity_id: Primary-key value.
        :returns: Entity or ``None``.
        :rtype: E | None
        """
        return self.session.get(self.model, entity_id)

    def find_one(self, **filters: Any) -> E | None:
        """Find a single entity by whitelisted equality filters.

        :raises ValueError: If a filter key is not whitelisted.
        """
        stmt = self._where(select(self.model), filters)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def assign_updates(self, instance: E, fields: Mapping[str, Any]) -> E:
        """Assign only whitelisted keys to ``instance`` and flush.

        ``setattr`` is used so SQLAlchemy ``@validates`` hooks run.

        :raises ValueError: On keys outside :meth:`_updatable_fields`.
        """
        allowed = self._updatable_fields()
        unknown = [k for k in fields if k not in allowed]
        if unknown:
            raise ValueError(f"Unknown or non-updatable fields: {unknown}")
        for k, v in fields.items():
            setattr(instance, k, v)
        self.flush()
        return instance

    def flush(self) -> None:
        """Flush pending changes to the database without committing."""
        self.session.flush()
