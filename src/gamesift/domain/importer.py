"""Bulk reconciliation of external lists into the kept list."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from gamesift.domain.errors import NoConfidentMatch
from gamesift.domain.model import TriageList

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from gamesift.domain.matcher import ReconciliationMatcher
    from gamesift.domain.mirror import CommitOutcome
    from gamesift.domain.model import ExternalEntry, Partition, ReconciliationRecord

log = getLogger(__name__)

type ProgressCallback = Callable[[int, int], None]


@dataclass(slots=True)
class ImportFailure:
    entry: ExternalEntry
    reason: str


@dataclass(slots=True)
class ImportReport:
    """What happened to every entry of one import, in input order per bucket."""

    matched: list[ReconciliationRecord] = field(default_factory=list)
    unmatched: list[ExternalEntry] = field(default_factory=list)
    failed: list[ImportFailure] = field(default_factory=list)
    outcome: CommitOutcome | None = None

    @property
    def total(self) -> int:
        return len(self.matched) + len(self.unmatched) + len(self.failed)


type _EntryResult = ReconciliationRecord | NoConfidentMatch | ImportFailure


async def reconcile_entries(
    matcher: ReconciliationMatcher,
    entries: Sequence[ExternalEntry],
    *,
    concurrency: int = 1,
    delay_seconds: float = 0.0,
    progress: ProgressCallback | None = None,
) -> ImportReport:
    """Match every entry against the catalog with bounded concurrency.

    A failure for one entry is recorded in the report and never aborts the rest.
    ``delay_seconds`` is slept after each lookup while its concurrency slot is held.
    """

    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    semaphore = asyncio.Semaphore(concurrency)
    done = 0

    async def _one(entry: ExternalEntry) -> _EntryResult:
        nonlocal done
        async with semaphore:
            try:
                return await matcher.reconcile(entry)
            except NoConfidentMatch as exc:
                log.info("%s", exc)
                return exc
            except Exception as exc:  # noqa: BLE001
                log.warning("Lookup failed for %r: %s", entry.name, exc)
                return ImportFailure(entry=entry, reason=str(exc) or type(exc).__name__)
            finally:
                done += 1
                if progress is not None:
                    progress(done, len(entries))
                if delay_seconds > 0:
                    await asyncio.sleep(delay_seconds)

    results = await asyncio.gather(*(_one(entry) for entry in entries))

    report = ImportReport()
    for entry, result in zip(entries, results, strict=True):
        if isinstance(result, NoConfidentMatch):
            report.unmatched.append(entry)
        elif isinstance(result, ImportFailure):
            report.failed.append(result)
        else:
            log.info(
                "Import matched %r -> %r (%d), score %.2f",
                entry.name,
                result.item.name,
                result.item.id,
                result.similarity_score,
            )
            report.matched.append(result)
    return report


def merge_matches(partition: Partition, records: Sequence[ReconciliationRecord]) -> Partition:
    """Return a copy of ``partition`` with every matched item kept and collected.

    Items already kept are only marked collected; items that were rejected move
    to the kept list.
    """

    merged = partition.copy()
    for record in records:
        item = record.item
        if merged.location_of(item.id) is TriageList.KEPT:
            existing = next(kept for kept in merged.kept if kept.id == item.id)
            if not existing.collected:
                merged.toggle_collected(item.id)
            continue
        merged.place(item.with_collected(True), TriageList.KEPT)
    return merged
