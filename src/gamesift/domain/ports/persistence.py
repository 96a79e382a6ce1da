"""Ports for persisting triage state."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from gamesift.domain.model import Item, Partition

type JsonBlob = Mapping[str, object]


@runtime_checkable
class EntityStore(Protocol):
    """Authoritative per-partition storage of kept and rejected lists.

    ``put_one`` replaces both lists atomically and returns what was committed.
    Failures surface as :class:`gamesift.domain.errors.UpstreamUnavailable`.
    """

    async def get(self, partition_key: str) -> Partition: ...

    async def put_one(
        self, partition_key: str, kept: Sequence[Item], rejected: Sequence[Item]
    ) -> Partition: ...

    async def delete_one(self, partition_key: str) -> None: ...


@runtime_checkable
class CursorStore(Protocol):
    """Durable resume offsets keyed by partition."""

    async def get_offset(self, partition_key: str) -> int: ...

    async def set_offset(self, partition_key: str, offset: int) -> None: ...


@runtime_checkable
class LocalMirror(Protocol):
    """Best-effort local key to JSON blob store."""

    def read(self, key: str) -> JsonBlob | None: ...

    def write(self, key: str, blob: JsonBlob) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


@runtime_checkable
class PartitionRepository(Protocol):
    """Synchronous repository used inside a unit of work."""

    def get(self, partition_key: str) -> Partition | None: ...

    def upsert(self, partition: Partition) -> None: ...

    def delete(self, partition_key: str) -> None: ...


@runtime_checkable
class CursorRepository(Protocol):
    def get_offset(self, partition_key: str) -> int | None: ...

    def set_offset(self, partition_key: str, offset: int) -> None: ...


__all__ = [
    "CursorRepository",
    "CursorStore",
    "EntityStore",
    "JsonBlob",
    "LocalMirror",
    "PartitionRepository",
]
