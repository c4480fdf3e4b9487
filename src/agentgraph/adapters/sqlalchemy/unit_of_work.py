"""SQLAlchemy-backed unit of work for the agent graph aggregate."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from agentgraph.adapters.sqlalchemy.mappings import start_mappers
from agentgraph.adapters.sqlalchemy.migrations import upgrade_head
from agentgraph.adapters.sqlalchemy.repositories import (
    SqlAlchemyAgentGraphRepository,
    SqlAlchemyAgentRelationRepository,
    SqlAlchemyAgentRepository,
    SqlAlchemyContextConfigRepository,
    SqlAlchemyProjectCatalog,
)
from agentgraph.config import get_database_config
from agentgraph.domain.errors import ConflictError, StorageError
from agentgraph.domain.ports import GraphRepositories, RepositoryCollection

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from agentgraph.config import DatabaseConfig

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


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
                "SQLAlchemy adapter not initialised. Call agentgraph.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self._engine,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory


_STATE = _AdapterState()


def create_database_engine(config: DatabaseConfig) -> Engine:
    """Build an engine for ``config``; SQLite waits ``busy_timeout_seconds`` on locks."""

    connect_args: dict[str, object] = {}
    if config.is_sqlite:
        connect_args["timeout"] = config.busy_timeout_seconds
    return create_engine(config.uri, future=True, connect_args=connect_args)


def startup(
    *,
    engine: Engine | None = None,
    database: DatabaseConfig | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, schema, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_database_engine(database or get_database_config())
    start_mappers()
    upgrade_head(engine=resolved_engine)
    _STATE.engine = resolved_engine
    log.info("SQLAlchemy adapter started on %s", resolved_engine.url.render_as_string())


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


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    """Translate driver failures into domain errors the service layer understands."""

    try:
        yield
    except (IntegrityError, StaleDataError) as exc:
        raise ConflictError(f"Concurrent modification detected during {action}") from exc
    except OperationalError as exc:
        if "locked" in str(exc.orig).lower():
            raise ConflictError(f"Database busy during {action}") from exc
        raise StorageError(f"Storage failure during {action}") from exc
    except SQLAlchemyError as exc:
        raise StorageError(f"Storage failure during {action}") from exc


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
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def flush(self) -> None:
        with _storage_errors("flush"):
            self.session.flush()

    def commit(self) -> None:
        with _storage_errors("commit"):
            self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

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


class SqlAlchemyGraphUnitOfWork(BaseSqlAlchemyUnitOfWork[GraphRepositories]):
    """Unit of work spanning one graph aggregate and the project catalog."""

    def _build_repositories(self, session: Session) -> GraphRepositories:
        return GraphRepositories(
            graphs=SqlAlchemyAgentGraphRepository(session),
            agents=SqlAlchemyAgentRepository(session),
            relations=SqlAlchemyAgentRelationRepository(session),
            context_configs=SqlAlchemyContextConfigRepository(session),
            catalog=SqlAlchemyProjectCatalog(session),
        )


if TYPE_CHECKING:
    from agentgraph.domain.ports import GraphUnitOfWork

    _uow_check: GraphUnitOfWork = SqlAlchemyGraphUnitOfWork()
