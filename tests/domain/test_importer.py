from __future__ import annotations

import asyncio

import pytest

from gamesift.domain.errors import SessionStateError
from gamesift.domain.importer import merge_matches, reconcile_entries
from gamesift.domain.matcher import ReconciliationMatcher
from gamesift.domain.model import ExternalEntry, Partition, ReconciliationRecord
from gamesift.domain.session import TriageSession
from tests.helpers.fakes import (
    FakeCatalog,
    FakeEntityStore,
    make_item,
    make_items,
)


class _CountingCatalog(FakeCatalog):
    def __init__(self) -> None:
        super().__init__()
        self.in_flight = 0
        self.peak = 0

    async def search(self, name: str, limit: int):  # type: ignore[override]
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.001)
            return await super().search(name, limit)
        finally:
            self.in_flight -= 1


def test_reconcile_entries_sorts_results_into_buckets(catalog: FakeCatalog) -> None:
    catalog.search_results = {
        "Chrono Trigger": [make_item(1, "Chrono Trigger")],
        "Tetris": [make_item(2, "Chess")],
    }
    catalog.failing_searches.add("Secret of Mana")
    entries = [
        ExternalEntry("Chrono Trigger"),
        ExternalEntry("Tetris"),
        ExternalEntry("Secret of Mana"),
        ExternalEntry("Nothing Here"),
    ]
    progress: list[tuple[int, int]] = []

    report = asyncio.run(
        reconcile_entries(
            ReconciliationMatcher(catalog),
            entries,
            progress=lambda done, total: progress.append((done, total)),
        )
    )

    assert [record.item.id for record in report.matched] == [1]
    assert report.matched[0].external_name == "Chrono Trigger"
    assert [entry.name for entry in report.unmatched] == ["Tetris", "Nothing Here"]
    assert [failure.entry.name for failure in report.failed] == ["Secret of Mana"]
    assert "search failed" in report.failed[0].reason
    assert report.total == 4
    assert progress[-1] == (4, 4)
    assert len(progress) == 4


def test_reconcile_entries_respects_concurrency_bound() -> None:
    catalog = _CountingCatalog()
    entries = [ExternalEntry(f"Game {index}") for index in range(12)]
    catalog.search_results = {
        entry.name: [make_item(index, entry.name)] for index, entry in enumerate(entries)
    }

    report = asyncio.run(
        reconcile_entries(ReconciliationMatcher(catalog), entries, concurrency=3)
    )

    assert catalog.peak <= 3
    assert [record.external_name for record in report.matched] == [e.name for e in entries]


def test_reconcile_entries_rejects_zero_concurrency(catalog: FakeCatalog) -> None:
    with pytest.raises(ValueError, match="concurrency"):
        asyncio.run(reconcile_entries(ReconciliationMatcher(catalog), [], concurrency=0))


def test_merge_matches_keeps_and_collects() -> None:
    already_kept = make_item(1)
    was_rejected = make_item(2)
    partition = Partition.build("7", kept=[already_kept], rejected=[was_rejected])
    records = [
        ReconciliationRecord(ExternalEntry("one"), make_item(1), 1.0),
        ReconciliationRecord(ExternalEntry("two"), make_item(2), 0.9),
        ReconciliationRecord(ExternalEntry("three"), make_item(3), 0.5),
    ]

    merged = merge_matches(partition, records)

    assert [item.id for item in merged.kept] == [1, 2, 3]
    assert all(item.collected for item in merged.kept)
    assert merged.rejected == []
    assert partition.kept[0].collected is False
    assert [item.id for item in partition.rejected] == [2]


def test_merge_matches_does_not_uncollect() -> None:
    partition = Partition.build("7", kept=[make_item(1, collected=True)])
    merged = merge_matches(
        partition, [ReconciliationRecord(ExternalEntry("one"), make_item(1), 1.0)]
    )
    assert merged.kept[0].collected is True


def test_session_import_commits_matches(
    session: TriageSession,
    catalog: FakeCatalog,
    entity_store: FakeEntityStore,
) -> None:
    catalog.partitions["7"] = make_items(5)
    catalog.search_results = {"Game 2": [make_item(2)], "Game 9": [make_item(9)]}

    async def scenario():
        await session.select_partition("7")
        return await session.import_gamelist(
            [ExternalEntry("Game 2"), ExternalEntry("Game 9"), ExternalEntry("Unknown")]
        )

    report = asyncio.run(scenario())

    assert report.outcome is not None
    assert report.outcome.saved is True
    assert [item.id for item in entity_store.rows["7"].kept] == [2, 9]
    assert all(item.collected for item in entity_store.rows["7"].kept)
    assert [item.id for item in session.batch] == [1, 3, 4, 5]
    assert [entry.name for entry in report.unmatched] == ["Unknown"]


def test_session_import_without_matches_does_not_commit(
    session: TriageSession,
    catalog: FakeCatalog,
    entity_store: FakeEntityStore,
) -> None:
    catalog.partitions["7"] = make_items(2)

    async def scenario():
        await session.select_partition("7")
        return await session.import_gamelist([ExternalEntry("Unknown")])

    report = asyncio.run(scenario())

    assert report.outcome is None
    assert entity_store.put_calls == []


def test_session_import_requires_matcher(session: TriageSession) -> None:
    session._matcher = None  # noqa: SLF001
    with pytest.raises(SessionStateError, match="matcher"):
        asyncio.run(session.import_gamelist([ExternalEntry("x")]))
