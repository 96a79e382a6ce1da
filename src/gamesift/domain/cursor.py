"""Paging over a partition while skipping items that were already handled."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection

    from gamesift.domain.model import Item
    from gamesift.domain.ports import CatalogClient

log = getLogger(__name__)

DEFAULT_PAGE_SIZE = 500
DEFAULT_MAX_PAGES_TO_SCAN = 200


@dataclass(slots=True)
class BatchResult:
    """Outcome of one :meth:`CatalogCursor.next_batch` call.

    ``new_offset`` is the durable resume point. On exhaustion it is reset to 0
    so the next cycle starts from the beginning of the partition.
    """

    items: list[Item] = field(default_factory=list)
    new_offset: int = 0
    exhausted: bool = False
    pages_scanned: int = 0


class CatalogCursor:
    """Scan catalog pages until one yields at least one untriaged item.

    Pages whose items are all excluded are skipped without being surfaced, so
    long runs of already-triaged items cost requests but never empty batches.
    """

    def __init__(
        self,
        catalog: CatalogClient,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages_to_scan: int = DEFAULT_MAX_PAGES_TO_SCAN,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        if max_pages_to_scan <= 0:
            raise ValueError("max_pages_to_scan must be positive")
        self._catalog = catalog
        self.page_size = page_size
        self.max_pages_to_scan = max_pages_to_scan

    async def next_batch(
        self,
        partition_key: str,
        start_offset: int,
        excluded_ids: Collection[int] = (),
    ) -> BatchResult:
        if start_offset < 0:
            raise ValueError("start_offset must be non-negative")
        excluded = set(excluded_ids)
        offset = start_offset
        for pages_scanned in range(1, self.max_pages_to_scan + 1):
            page = await self._catalog.list_by_partition(partition_key, offset, self.page_size)
            if not page:
                # the empty response marks the end; it is not a scanned page
                scanned = pages_scanned - 1
                log.info(
                    "Partition %s exhausted at offset %d after %d page(s)",
                    partition_key,
                    offset,
                    scanned,
                )
                return BatchResult(exhausted=True, pages_scanned=scanned)

            page_end = offset + len(page)
            survivors = _surviving(page, excluded)
            if survivors:
                log.debug(
                    "Partition %s: %d of %d item(s) survive at offset %d",
                    partition_key,
                    len(survivors),
                    len(page),
                    offset,
                )
                return BatchResult(
                    items=survivors, new_offset=page_end, pages_scanned=pages_scanned
                )
            if len(page) < self.page_size:
                # a short page is the last one
                log.info("Partition %s exhausted on a fully triaged last page", partition_key)
                return BatchResult(exhausted=True, pages_scanned=pages_scanned)
            offset = page_end

        log.warning(
            "Partition %s: no untriaged items within %d page(s); treating as exhausted",
            partition_key,
            self.max_pages_to_scan,
        )
        return BatchResult(exhausted=True, pages_scanned=self.max_pages_to_scan)


def _surviving(page: list[Item], excluded: set[int]) -> list[Item]:
    survivors: list[Item] = []
    taken: set[int] = set()
    for item in page:
        if item.id in excluded or item.id in taken:
            continue
        taken.add(item.id)
        survivors.append(item)
    return survivors
