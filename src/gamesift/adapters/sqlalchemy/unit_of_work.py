"""Engine lifecycle and the unit of work for triage state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from gamesift.adapters.sqlalchemy.migrations import upgrade_head
from gamesift.adapters.sqlalchemy.repositories import (
    SqlAlchemyCursorRepository,
    SqlAlchemyPartitionRepository,
)
from gamesift.config import get_database_config
from gamesift.domain.ports.unit_of_work import TriageRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when the database adapter is used before :func:`startup` or reconfigured."""


@dataclass(slots=True)
class _Database:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = field(default=None, repr=False)

    def bind(self, engine: Engine | None) -> None:
        self.engine = engine
        self.sessions = (
            sessionmaker(bind=engine, expire_on_commit=False) if engine is not None else None
        )

    def open_session(self) -> Session:
        if self.sessions is None:
            raise StartupError(
                "Database not initialised; call gamesift.adapters.sqlalchemy.startup() first"
            )
        return self.sessions()


_DATABASE = _Database()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Create (or adopt) the engine and migrate it to the latest schema."""

    if _DATABASE.engine is not None and not force:
        raise StartupError("Database already initialised; pass force=True to rebind it")

    if engine is None:
        engine = create_engine(database_uri or get_database_config().uri, future=True)
    upgrade_head(engine=engine)
    _DATABASE.bind(engine)


def configured_engine() -> Engine | None:
    return _DATABASE.engine


def is_started() -> bool:
    return _DATABASE.engine is not None


def shutdown() -> None:
    """Dispose the engine; the next unit of work needs a new :func:`startup`."""

    if _DATABASE.engine is not None:
        _DATABASE.engine.dispose()
    _DATABASE.bind(None)


class SqlAlchemyTriageUnitOfWork:
    """One session spanning the partition and cursor repositories.

    Leaving the ``with`` block on an exception rolls back whatever was not
    committed; the session is closed either way.
    """

    def __init__(self) -> None:
        if not is_started():
            raise StartupError(
                "Database not initialised; call gamesift.adapters.sqlalchemy.startup() first"
            )
        self._session: Session | None = None
        self._repositories: TriageRepositories | None = None

    def __enter__(self) -> SqlAlchemyTriageUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = _DATABASE.open_session()
        self._repositories = TriageRepositories(
            partitions=SqlAlchemyPartitionRepository(self._session),
            cursors=SqlAlchemyCursorRepository(self._session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> TriageRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from gamesift.domain.ports.unit_of_work import TriageUnitOfWork

    _uow_check: TriageUnitOfWork = SqlAlchemyTriageUnitOfWork()
