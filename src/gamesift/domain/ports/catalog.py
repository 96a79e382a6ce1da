"""Ports for reading the remote game catalog."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gamesift.domain.model import Item


@runtime_checkable
class CatalogClient(Protocol):
    """Read-only access to catalog items.

    Implementations raise :class:`gamesift.domain.errors.UpstreamUnavailable`
    (or a subclass) on transport or protocol failures.
    """

    async def list_by_partition(self, partition_key: str, offset: int, limit: int) -> list[Item]:
        """Return one page of items for ``partition_key`` in a stable order.

        An empty list means the offset is past the end of the partition.
        """
        ...

    async def search(self, name: str, limit: int) -> list[Item]: ...


__all__ = ["CatalogClient"]
