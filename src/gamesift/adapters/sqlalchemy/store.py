"""Async entity and cursor stores on top of the SQLAlchemy unit of work.

The unit-of-work blocks are synchronous; each one runs in a worker thread so a
slow database never stalls the event loop for other partitions.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy.exc import InterfaceError, OperationalError

from gamesift.adapters.sqlalchemy.unit_of_work import SqlAlchemyTriageUnitOfWork
from gamesift.domain.errors import UpstreamUnavailable
from gamesift.domain.model import Partition
from gamesift.domain.ports import CursorStore, EntityStore

if TYPE_CHECKING:
    from collections.abc import Sequence

    from gamesift.domain.model import Item
    from gamesift.domain.ports import TriageUnitOfWork

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], TriageUnitOfWork]

_UNAVAILABLE = (OperationalError, InterfaceError)


async def _in_thread[T](work: Callable[[], T]) -> T:
    try:
        return await asyncio.to_thread(work)
    except _UNAVAILABLE as exc:
        raise UpstreamUnavailable(f"Database unavailable: {exc}") from exc


class SqlAlchemyPartitionStore:
    """Entity store persisting one row per partition."""

    def __init__(self, uow_factory: UnitOfWorkFactory = SqlAlchemyTriageUnitOfWork) -> None:
        self._uow_factory = uow_factory

    async def get(self, partition_key: str) -> Partition:
        partition = await _in_thread(lambda: self._read(partition_key))
        return partition or Partition(key=partition_key)

    async def put_one(
        self, partition_key: str, kept: Sequence[Item], rejected: Sequence[Item]
    ) -> Partition:
        partition = Partition.build(partition_key, kept, rejected)
        committed = await _in_thread(lambda: self._write(partition))
        log.debug(
            "Stored partition %s: %d kept, %d rejected",
            partition_key,
            len(partition.kept),
            len(partition.rejected),
        )
        return committed or partition

    async def delete_one(self, partition_key: str) -> None:
        await _in_thread(lambda: self._delete(partition_key))

    def _read(self, partition_key: str) -> Partition | None:
        with self._uow_factory() as uow:
            return uow.repositories.partitions.get(partition_key)

    def _write(self, partition: Partition) -> Partition | None:
        with self._uow_factory() as uow:
            uow.repositories.partitions.upsert(partition)
            uow.commit()
            return uow.repositories.partitions.get(partition.key)

    def _delete(self, partition_key: str) -> None:
        with self._uow_factory() as uow:
            uow.repositories.partitions.delete(partition_key)
            uow.commit()


class SqlAlchemyCursorStore:
    def __init__(self, uow_factory: UnitOfWorkFactory = SqlAlchemyTriageUnitOfWork) -> None:
        self._uow_factory = uow_factory

    async def get_offset(self, partition_key: str) -> int:
        offset = await _in_thread(lambda: self._read(partition_key))
        return offset or 0

    async def set_offset(self, partition_key: str, offset: int) -> None:
        await _in_thread(lambda: self._write(partition_key, offset))

    def _read(self, partition_key: str) -> int | None:
        with self._uow_factory() as uow:
            return uow.repositories.cursors.get_offset(partition_key)

    def _write(self, partition_key: str, offset: int) -> None:
        with self._uow_factory() as uow:
            uow.repositories.cursors.set_offset(partition_key, offset)
            uow.commit()


if TYPE_CHECKING:
    _store_check: EntityStore = SqlAlchemyPartitionStore()
    _cursor_check: CursorStore = SqlAlchemyCursorStore()
