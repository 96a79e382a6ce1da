"""SQLAlchemy adapter package for gamesift."""

from __future__ import annotations

from .mappings import metadata, partition_state_table, triage_cursor_table
from .repositories import SqlAlchemyCursorRepository, SqlAlchemyPartitionRepository
from .store import SqlAlchemyCursorStore, SqlAlchemyPartitionStore
from .unit_of_work import (
    SqlAlchemyTriageUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyCursorRepository",
    "SqlAlchemyCursorStore",
    "SqlAlchemyPartitionRepository",
    "SqlAlchemyPartitionStore",
    "SqlAlchemyTriageUnitOfWork",
    "StartupError",
    "is_started",
    "metadata",
    "partition_state_table",
    "shutdown",
    "startup",
    "triage_cursor_table",
]
