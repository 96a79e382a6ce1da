from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gamesift.adapters.sqlalchemy.migrations import upgrade_head
from gamesift.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyTriageUnitOfWork,
    shutdown,
    startup,
)
from gamesift.domain.cursor import CatalogCursor
from gamesift.domain.matcher import ReconciliationMatcher
from gamesift.domain.mirror import MirroredPartitionStore
from gamesift.domain.session import TriageSession
from tests.helpers.fakes import FakeCatalog, FakeEntityStore, MemoryCursorStore, MemoryMirror

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # one shared connection so worker threads see the same in-memory database
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyTriageUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyTriageUnitOfWork:
        return SqlAlchemyTriageUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def entity_store() -> FakeEntityStore:
    return FakeEntityStore()


@pytest.fixture
def mirror() -> MemoryMirror:
    return MemoryMirror()


@pytest.fixture
def offsets() -> MemoryCursorStore:
    return MemoryCursorStore()


@pytest.fixture
def session(
    catalog: FakeCatalog,
    entity_store: FakeEntityStore,
    mirror: MemoryMirror,
    offsets: MemoryCursorStore,
) -> TriageSession:
    return TriageSession(
        cursor=CatalogCursor(catalog, page_size=10, max_pages_to_scan=20),
        partitions=MirroredPartitionStore(entity_store, mirror),
        offsets=offsets,
        matcher=ReconciliationMatcher(catalog),
    )
