"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite

from gamesift.adapters.sqlalchemy.mappings import partition_state_table, triage_cursor_table
from gamesift.domain.model import Partition

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy import Table
    from sqlalchemy.orm import Session


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _upsert(session: Session, table: Table, key: str, values: Mapping[str, object]) -> None:
    """Insert or update the single row keyed by ``key`` in one statement.

    Dialects without ``ON CONFLICT`` fall back to update-then-insert within the
    same transaction; other rows are never touched either way.
    """

    row = {"partition_key": key, **values}
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        stmt = sqlite.insert(table).values(row)
        session.execute(
            stmt.on_conflict_do_update(index_elements=[table.c.partition_key], set_=dict(values))
        )
        return
    if dialect == "postgresql":
        stmt = postgresql.insert(table).values(row)
        session.execute(
            stmt.on_conflict_do_update(index_elements=[table.c.partition_key], set_=dict(values))
        )
        return
    result = session.execute(
        update(table).where(table.c.partition_key == key).values(dict(values))
    )
    if result.rowcount == 0:
        session.execute(insert(table).values(row))


class SqlAlchemyPartitionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, partition_key: str) -> Partition | None:
        stmt = select(
            partition_state_table.c.kept, partition_state_table.c.rejected
        ).where(partition_state_table.c.partition_key == partition_key)
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return Partition.build(partition_key, kept=row.kept, rejected=row.rejected)

    def upsert(self, partition: Partition) -> None:
        clean = Partition.build(partition.key, partition.kept, partition.rejected)
        _upsert(
            self.session,
            partition_state_table,
            clean.key,
            {"kept": clean.kept, "rejected": clean.rejected, "updated_at": _utcnow()},
        )

    def delete(self, partition_key: str) -> None:
        self.session.execute(
            delete(partition_state_table).where(
                partition_state_table.c.partition_key == partition_key
            )
        )

    def keys(self) -> list[str]:
        stmt = select(partition_state_table.c.partition_key).order_by(
            partition_state_table.c.partition_key
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyCursorRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_offset(self, partition_key: str) -> int | None:
        stmt = select(triage_cursor_table.c.next_offset).where(
            triage_cursor_table.c.partition_key == partition_key
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def set_offset(self, partition_key: str, offset: int) -> None:
        if offset < 0:
            raise ValueError("offset must be non-negative")
        _upsert(
            self.session,
            triage_cursor_table,
            partition_key,
            {"next_offset": offset, "updated_at": _utcnow()},
        )
