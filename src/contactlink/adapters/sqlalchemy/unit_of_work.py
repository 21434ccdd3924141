"""SQLAlchemy-backed units of work for identity resolution.

Every unit of work runs as if no other unit of work were active. On SQLite the
database write lock is taken with ``BEGIN IMMEDIATE`` before the first read; on
other backends the engine runs at ``SERIALIZABLE`` isolation and the database
reports conflicting transactions, which surface as
:class:`~contactlink.domain.resolution.errors.ConcurrencyConflictError`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from contactlink.adapters.sqlalchemy.mappings import start_mappers
from contactlink.adapters.sqlalchemy.migrations import upgrade_head
from contactlink.adapters.sqlalchemy.repositories import SqlAlchemyContactRepository
from contactlink.config import get_database_config, get_resolution_config
from contactlink.domain.ports.unit_of_work import ContactRepositories, RepositoryCollection
from contactlink.domain.resolution.errors import (
    ConcurrencyConflictError,
    StoreUnavailableError,
)

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine

log = logging.getLogger(__name__)

SERIALIZATION_FAILURE_SQLSTATES = frozenset({"40001", "40P01"})
SQLITE_CONFLICT_MARKERS = ("database is locked", "database table is locked", "database is busy")


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


def create_contact_engine(
    database_uri: str | None = None,
    *,
    busy_timeout_seconds: float | None = None,
) -> Engine:
    """Create an engine whose transactions are serializable.

    Bound parameters are left out of error messages so identifiers never reach logs.
    """

    url = make_url(database_uri or get_database_config().uri)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, isolation_level="SERIALIZABLE", hide_parameters=True)

    timeout = (
        busy_timeout_seconds
        if busy_timeout_seconds is not None
        else get_resolution_config().sqlite_busy_timeout_seconds
    )
    engine = create_engine(url, connect_args={"timeout": timeout}, hide_parameters=True)
    _lock_sqlite_on_begin(engine)
    return engine


def _lock_sqlite_on_begin(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write, which would let two units of
    # work read the same snapshot. Take over transaction control instead.

    @event.listens_for(engine, "connect")
    def _disable_implicit_begin(dbapi_connection: Any, _connection_record: Any) -> None:  # pyright: ignore[reportUnusedFunction]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection: Connection) -> None:  # pyright: ignore[reportUnusedFunction]
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def is_serialization_failure(exc: BaseException) -> bool:
    """Return whether ``exc`` reports a conflict with a concurrent transaction."""

    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in SERIALIZATION_FAILURE_SQLSTATES:
        return True
    message = str(orig).lower()
    return any(marker in message for marker in SQLITE_CONFLICT_MARKERS)


def translate_store_error(exc: SQLAlchemyError) -> StoreUnavailableError:
    if is_serialization_failure(exc):
        return ConcurrencyConflictError(str(exc))
    return StoreUnavailableError(str(exc))


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call contactlink.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, schema, and session factory.

    A supplied ``engine`` should come from :func:`create_contact_engine`.
    """

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_contact_engine(database_uri)
    start_mappers()
    upgrade_head(engine=resolved_engine)
    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if exc_type is not None:
                self.rollback()
        finally:
            self.session.close()
            self.session = None
        if isinstance(exc_value, SQLAlchemyError):
            raise translate_store_error(exc_value) from exc_value
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            raise translate_store_error(exc) from exc

    def rollback(self) -> None:
        try:
            self.session.rollback()
        except SQLAlchemyError:
            log.exception("Rollback failed")

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyContactUnitOfWork(BaseSqlAlchemyUnitOfWork[ContactRepositories]):
    """Unit of work managing SQLAlchemy sessions for contact resolution."""

    def _build_repositories(self, session: Session) -> ContactRepositories:
        return ContactRepositories(contacts=SqlAlchemyContactRepository(session))


if TYPE_CHECKING:
    from contactlink.domain.ports.unit_of_work import ContactUnitOfWork

    _uow_check: ContactUnitOfWork = SqlAlchemyContactUnitOfWork()
