from __future__ import annotations

import asyncio

from gamesift.domain.mirror import (
    MirrorCursorStore,
    MirroredPartitionStore,
    cursor_mirror_key,
    partition_mirror_key,
)
from gamesift.domain.model import Partition
from tests.helpers.fakes import FakeEntityStore, MemoryMirror, make_item


def test_load_prefers_store_and_refreshes_mirror() -> None:
    store = FakeEntityStore({"7": Partition.build("7", kept=[make_item(1)])})
    mirror = MemoryMirror()
    mirror.write(partition_mirror_key("7"), {"kept": [], "rejected": [], "pending": False})

    partition = asyncio.run(MirroredPartitionStore(store, mirror).load("7"))

    assert [item.id for item in partition.kept] == [1]
    assert mirror.blobs["partition:7"]["kept"] == [make_item(1).to_json()]


def test_load_falls_back_to_mirror_then_empty() -> None:
    store = FakeEntityStore()
    store.available = False
    mirror = MemoryMirror()
    mirror.write(
        partition_mirror_key("7"),
        {"kept": [], "rejected": [make_item(4).to_json()], "pending": False},
    )
    partitions = MirroredPartitionStore(store, mirror)

    assert [item.id for item in asyncio.run(partitions.load("7")).rejected] == [4]
    assert asyncio.run(partitions.load("8")).is_empty


def test_load_keeps_pending_mirror_entry() -> None:
    store = FakeEntityStore()
    mirror = MemoryMirror()
    pending = {"kept": [make_item(5).to_json()], "rejected": [], "pending": True}
    mirror.write(partition_mirror_key("7"), pending)

    asyncio.run(MirroredPartitionStore(store, mirror).load("7"))

    assert mirror.blobs["partition:7"] == pending


def test_unreadable_mirror_entry_is_ignored() -> None:
    store = FakeEntityStore()
    store.available = False
    mirror = MemoryMirror()
    mirror.write(partition_mirror_key("7"), {"kept": "nope", "pending": True})
    partitions = MirroredPartitionStore(store, mirror)

    assert asyncio.run(partitions.load("7")).is_empty
    assert asyncio.run(partitions.flush_pending("7")) is None


def test_commit_parks_and_flush_delivers() -> None:
    store = FakeEntityStore()
    mirror = MemoryMirror()
    partitions = MirroredPartitionStore(store, mirror)
    store.available = False

    outcome = asyncio.run(partitions.commit("7", [make_item(1)], [make_item(2)]))
    assert outcome.saved is False
    assert partitions.pending_keys() == ["7"]

    retry = asyncio.run(partitions.flush_pending("7"))
    assert retry is not None
    assert retry.saved is False

    store.available = True
    delivered = asyncio.run(partitions.flush_pending("7"))
    assert delivered is not None
    assert delivered.saved is True
    assert [item.id for item in store.rows["7"].kept] == [1]
    assert partitions.pending_keys() == []
    assert asyncio.run(partitions.flush_pending("7")) is None


def test_commit_dedupes_before_sending() -> None:
    store = FakeEntityStore()
    partitions = MirroredPartitionStore(store, MemoryMirror())

    outcome = asyncio.run(
        partitions.commit("7", [make_item(1), make_item(1, "Renamed")], [make_item(1)])
    )

    assert outcome.saved is True
    assert [item.name for item in outcome.partition.kept] == ["Renamed"]
    assert outcome.partition.rejected == []


def test_mirror_cursor_store_round_trips_and_rejects_garbage() -> None:
    mirror = MemoryMirror()
    offsets = MirrorCursorStore(mirror)

    assert asyncio.run(offsets.get_offset("7")) == 0
    asyncio.run(offsets.set_offset("7", 500))
    assert mirror.blobs[cursor_mirror_key("7")] == {"next_offset": 500}
    assert asyncio.run(offsets.get_offset("7")) == 500

    mirror.write(cursor_mirror_key("7"), {"next_offset": -3})
    assert asyncio.run(offsets.get_offset("7")) == 0
    mirror.write(cursor_mirror_key("7"), {"next_offset": True})
    assert asyncio.run(offsets.get_offset("7")) == 0
