"""Triage session state machine.

A session tracks one selected partition at a time. Every mutation of the
kept/rejected lists is applied to the in-memory working copy first and then
committed as a full replacement of that partition through
:class:`gamesift.domain.mirror.MirroredPartitionStore`. Operations on the same
partition are serialized by a per-partition lock; a generation counter makes
results for a partition that has since been deselected get dropped.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from gamesift.domain.errors import (
    NoSurvivingItems,
    SelectionChanged,
    SessionStateError,
    UpstreamUnavailable,
)
from gamesift.domain.importer import merge_matches, reconcile_entries
from gamesift.domain.model import (
    CursorState,
    Keep,
    Partition,
    PartitionStats,
    Reject,
    TriageList,
    Undo,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from gamesift.domain.cursor import BatchResult, CatalogCursor
    from gamesift.domain.importer import ImportReport, ProgressCallback
    from gamesift.domain.matcher import ReconciliationMatcher
    from gamesift.domain.mirror import CommitOutcome, MirroredPartitionStore
    from gamesift.domain.model import Decision, ExternalEntry, Item
    from gamesift.domain.ports import CursorStore

log = getLogger(__name__)


class SessionState(StrEnum):
    IDLE = "idle"
    BATCH_LOADING = "batch_loading"
    READY = "ready"
    COMMITTING = "committing"
    EXHAUSTED = "exhausted"


_SETTLED = frozenset({SessionState.READY, SessionState.EXHAUSTED})


class PartitionLocks:
    """One lock per partition key, shared by every session of a process."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def for_partition(self, partition_key: str) -> asyncio.Lock:
        return self._locks.setdefault(partition_key, asyncio.Lock())


class TriageSession:
    def __init__(
        self,
        *,
        cursor: CatalogCursor,
        partitions: MirroredPartitionStore,
        offsets: CursorStore,
        matcher: ReconciliationMatcher | None = None,
        locks: PartitionLocks | None = None,
        import_concurrency: int = 1,
        import_delay_seconds: float = 0.0,
    ) -> None:
        self._cursor = cursor
        self._partitions = partitions
        self._offsets = offsets
        self._matcher = matcher
        self._locks = locks or PartitionLocks()
        self._import_concurrency = import_concurrency
        self._import_delay_seconds = import_delay_seconds

        self.state = SessionState.IDLE
        self.partition_key: str | None = None
        self.partition: Partition | None = None
        self.batch: list[Item] = []
        self.last_warning: str | None = None
        self._cursor_state: CursorState | None = None
        self._generation = 0

    # ------------------------------------------------------------------
    # Selection and batches
    # ------------------------------------------------------------------

    async def select_partition(self, partition_key: str | int) -> BatchResult:
        """Switch to ``partition_key`` and load its first batch from the resume offset."""

        key = str(partition_key)
        self._generation += 1
        generation = self._generation
        self.partition_key = key
        self.partition = Partition(key=key)
        self.batch = []
        self.last_warning = None
        self._cursor_state = CursorState(partition_key=key)
        self.state = SessionState.BATCH_LOADING
        log.info("Selected partition %s", key)

        async with self._lock(key):
            flushed = await self._partitions.flush_pending(key)
            if flushed is not None:
                partition = flushed.partition
                if not flushed.saved:
                    self.last_warning = f"Unsaved changes for {key} are still pending"
            else:
                partition = await self._partitions.load(key)
            offset = await self._read_offset(key)
            self._ensure_current(generation, key)
            self.partition = partition
            self._cursor_state.next_offset = offset
            return await self._load_batch(key, generation)

    async def load_more(self) -> BatchResult:
        key = self._selected_key()
        if self.state is SessionState.EXHAUSTED:
            raise NoSurvivingItems(key)
        async with self._lock(key):
            self._writable(key)
            if self.state is SessionState.EXHAUSTED:
                raise NoSurvivingItems(key)
            if self.batch:
                raise SessionStateError("The current batch still has untriaged items")
            return await self._load_batch(key, self._generation)

    async def reset(self) -> BatchResult:
        """Start over from offset 0, forgetting what this session has already shown."""

        key = self._selected_key()
        async with self._lock(key):
            self._writable(key)
            await self._write_offset(key, 0)
            return await self._restart(key, self._generation)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    async def apply(self, item: Item, decision: Decision) -> CommitOutcome:
        match decision:
            case Keep() | Reject():
                return await self.act(item, decision)
            case Undo(from_list=from_list, to_list=to_list):
                return await self.undo(item, from_list, to_list)
            case _:
                raise SessionStateError(f"Unknown decision {decision!r}")

    async def act(self, item: Item, decision: Keep | Reject) -> CommitOutcome:
        match decision:
            case Keep():
                target = TriageList.KEPT
            case Reject():
                target = TriageList.REJECTED
            case _:
                raise SessionStateError(f"act() cannot apply {decision!r}")

        key = self._selected_key()
        async with self._lock(key):
            partition = self._writable(key)
            self._drop_from_batch(item.id)
            partition.place(item, target)
            log.debug("Partition %s: %s -> %s", key, item.id, target)
            return await self._commit(key, self._generation)

    async def undo(
        self,
        item: Item,
        from_list: TriageList,
        to_list: TriageList = TriageList.PENDING,
    ) -> CommitOutcome:
        try:
            Undo(from_list=from_list, to_list=to_list)
        except ValueError as exc:
            raise SessionStateError(str(exc)) from exc

        key = self._selected_key()
        async with self._lock(key):
            partition = self._writable(key)
            removed = partition.remove(item.id, from_list)
            if removed is None:
                raise SessionStateError(f"Item {item.id} is not in the {from_list} list")
            if to_list is TriageList.PENDING:
                self._drop_from_batch(removed.id)
                self.batch.insert(0, removed.with_collected(False))
                if self.state is SessionState.EXHAUSTED:
                    self.state = SessionState.READY
            else:
                partition.place(removed, to_list)
            log.debug("Partition %s: %s undone from %s to %s", key, item.id, from_list, to_list)
            return await self._commit(key, self._generation)

    def skip(self, item_id: int) -> None:
        """Drop an item from the batch without a decision; it returns in a later cycle."""

        self._selected_key()
        self._drop_from_batch(item_id)

    async def toggle_collected(self, item_id: int) -> CommitOutcome:
        key = self._selected_key()
        async with self._lock(key):
            partition = self._writable(key)
            if partition.toggle_collected(item_id) is None:
                raise SessionStateError(f"Item {item_id} is not kept; only kept items are collected")
            return await self._commit(key, self._generation)

    # ------------------------------------------------------------------
    # Import, export and maintenance
    # ------------------------------------------------------------------

    async def import_gamelist(
        self,
        entries: Sequence[ExternalEntry],
        *,
        progress: ProgressCallback | None = None,
    ) -> ImportReport:
        """Reconcile ``entries`` against the catalog and keep every match as collected."""

        if self._matcher is None:
            raise SessionStateError("No reconciliation matcher configured")
        key = self._selected_key()
        generation = self._generation
        report = await reconcile_entries(
            self._matcher,
            entries,
            concurrency=self._import_concurrency,
            delay_seconds=self._import_delay_seconds,
            progress=progress,
        )
        log.info(
            "Import for %s: %d matched, %d unmatched, %d failed",
            key,
            len(report.matched),
            len(report.unmatched),
            len(report.failed),
        )
        if not report.matched:
            return report

        async with self._lock(key):
            if generation == self._generation:
                partition = self._writable(key)
                merged = merge_matches(partition, report.matched)
                self.partition = merged
                matched_ids = {record.item.id for record in report.matched}
                self.batch = [item for item in self.batch if item.id not in matched_ids]
                report.outcome = await self._commit(key, generation)
            else:
                # the partition was deselected while matching; commit it directly
                merged = merge_matches(await self._partitions.load(key), report.matched)
                report.outcome = await self._partitions.commit(key, merged.kept, merged.rejected)
        return report

    async def import_snapshot(self, kept: Iterable[Item], rejected: Iterable[Item]) -> CommitOutcome:
        """Replace the selected partition's lists and reload from offset 0."""

        key = self._selected_key()
        async with self._lock(key):
            self._writable(key)
            generation = self._generation
            self.partition = Partition.build(key, kept, rejected)
            outcome = await self._commit(key, generation)
            await self._write_offset(key, 0)
            try:
                await self._restart(key, generation)
            except UpstreamUnavailable as exc:
                log.warning("Snapshot imported but batch reload failed: %s", exc)
                self.last_warning = f"Could not reload the batch: {exc}"
            return outcome

    async def clear(self) -> BatchResult:
        """Delete the selected partition from the store and start it over."""

        key = self._selected_key()
        async with self._lock(key):
            self._writable(key)
            generation = self._generation
            await self._partitions.clear(key)
            log.info("Cleared partition %s", key)
            self.partition = Partition(key=key)
            await self._write_offset(key, 0)
            return await self._restart(key, generation)

    def export_snapshot(self) -> Partition:
        if self.partition is None:
            raise SessionStateError("No partition selected")
        return self.partition.copy()

    def stats(self) -> PartitionStats:
        if self.partition is None:
            raise SessionStateError("No partition selected")
        return PartitionStats.of(self.partition)

    def kept_view(self, *, collected_only: bool = False) -> list[Item]:
        if self.partition is None:
            raise SessionStateError("No partition selected")
        return [item for item in self.partition.kept if item.collected or not collected_only]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock(self, key: str) -> asyncio.Lock:
        return self._locks.for_partition(key)

    def _selected_key(self) -> str:
        if self.partition_key is None:
            raise SessionStateError("No partition selected")
        return self.partition_key

    def _ensure_current(self, generation: int, key: str) -> None:
        if generation != self._generation or self.partition_key != key:
            log.info("Discarding work for deselected partition %s", key)
            raise SelectionChanged(key)

    def _writable(self, key: str) -> Partition:
        if self.partition_key != key or self.partition is None:
            raise SelectionChanged(key)
        if self.state not in _SETTLED:
            raise SessionStateError(f"Session is {self.state}; try again once it settles")
        return self.partition

    def _drop_from_batch(self, item_id: int) -> None:
        self.batch = [item for item in self.batch if item.id != item_id]

    async def _restart(self, key: str, generation: int) -> BatchResult:
        self._cursor_state = CursorState(partition_key=key)
        self.batch = []
        return await self._load_batch(key, generation)

    async def _load_batch(self, key: str, generation: int) -> BatchResult:
        cursor_state = self._cursor_state
        partition = self.partition
        if cursor_state is None or partition is None:
            raise SessionStateError("No partition selected")
        start_offset = cursor_state.next_offset
        excluded = (
            partition.triaged_ids()
            | cursor_state.seen_this_session
            | {item.id for item in self.batch}
        )
        self.state = SessionState.BATCH_LOADING
        try:
            result = await self._cursor.next_batch(key, start_offset, excluded)
        except Exception:
            if generation == self._generation:
                self.state = SessionState.READY
            raise
        self._ensure_current(generation, key)

        await self._write_offset(key, result.new_offset)
        if generation != self._generation:
            # deselected while persisting: put the previous resume point back
            await self._write_offset(key, start_offset)
            raise SelectionChanged(key)

        cursor_state.next_offset = result.new_offset
        cursor_state.seen_this_session.update(item.id for item in result.items)
        self.batch = list(result.items)
        if result.exhausted:
            log.info("Partition %s has no untriaged items left", key)
            self.state = SessionState.EXHAUSTED
        else:
            self.state = SessionState.READY
        return result

    async def _commit(self, key: str, generation: int) -> CommitOutcome:
        partition = self._writable(key)
        resume_state = self.state
        self.state = SessionState.COMMITTING
        try:
            outcome = await self._partitions.commit(key, partition.kept, partition.rejected)
        finally:
            if generation == self._generation:
                self.state = resume_state
        if generation != self._generation:
            return outcome
        if outcome.saved:
            self.partition = outcome.partition.copy()
            self.last_warning = None
        else:
            self.last_warning = outcome.warning
        return outcome

    async def _read_offset(self, key: str) -> int:
        try:
            return await self._offsets.get_offset(key)
        except UpstreamUnavailable as exc:
            log.warning("Resume offset for %s unavailable, starting at 0: %s", key, exc)
            return 0

    async def _write_offset(self, key: str, offset: int) -> None:
        try:
            await self._offsets.set_offset(key, offset)
        except UpstreamUnavailable as exc:
            log.warning("Could not persist resume offset %d for %s: %s", offset, key, exc)
