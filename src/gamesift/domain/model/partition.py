"""Per-platform triage state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .item import Item, TriageList

if TYPE_CHECKING:
    from collections.abc import Iterable


def _dedupe_last_wins(items: Iterable[Item]) -> list[Item]:
    """Drop repeated ids, keeping the last occurrence in its position."""

    materialized = list(items)
    last_index = {item.id: index for index, item in enumerate(materialized)}
    return [item for index, item in enumerate(materialized) if last_index[item.id] == index]


@dataclass(slots=True)
class Partition:
    """Kept and rejected lists for one partition key.

    Invariant: an id appears at most once across ``kept`` and ``rejected``.
    Use :meth:`build` for untrusted input; it repairs duplicates instead of
    rejecting them.
    """

    key: str
    kept: list[Item] = field(default_factory=list)
    rejected: list[Item] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        key: str | int,
        kept: Iterable[Item] = (),
        rejected: Iterable[Item] = (),
    ) -> Partition:
        clean_kept = _dedupe_last_wins(kept)
        kept_ids = {item.id for item in clean_kept}
        # an id present in both lists stays kept
        clean_rejected = [
            item.with_collected(False)
            for item in _dedupe_last_wins(rejected)
            if item.id not in kept_ids
        ]
        return cls(key=str(key), kept=clean_kept, rejected=clean_rejected)

    @property
    def is_empty(self) -> bool:
        return not self.kept and not self.rejected

    def copy(self) -> Partition:
        return Partition(key=self.key, kept=list(self.kept), rejected=list(self.rejected))

    def triaged_ids(self) -> set[int]:
        return {item.id for item in self.kept} | {item.id for item in self.rejected}

    def list_for(self, which: TriageList) -> list[Item]:
        if which is TriageList.KEPT:
            return self.kept
        if which is TriageList.REJECTED:
            return self.rejected
        raise ValueError(f"{which} is not a durable list")

    def location_of(self, item_id: int) -> TriageList | None:
        if any(item.id == item_id for item in self.kept):
            return TriageList.KEPT
        if any(item.id == item_id for item in self.rejected):
            return TriageList.REJECTED
        return None

    def remove(self, item_id: int, source: TriageList) -> Item | None:
        items = self.list_for(source)
        for index, item in enumerate(items):
            if item.id == item_id:
                return items.pop(index)
        return None

    def place(self, item: Item, target: TriageList) -> None:
        """Move ``item`` to the end of ``target``, removing it from every list first."""

        self.remove(item.id, TriageList.KEPT)
        self.remove(item.id, TriageList.REJECTED)
        if target is TriageList.REJECTED:
            item = item.with_collected(False)
        self.list_for(target).append(item)

    def toggle_collected(self, item_id: int) -> Item | None:
        for index, item in enumerate(self.kept):
            if item.id == item_id:
                flipped = item.with_collected(not item.collected)
                self.kept[index] = flipped
                return flipped
        return None

    def to_json(self) -> dict[str, object]:
        return {
            "partition_key": self.key,
            "kept": [item.to_json() for item in self.kept],
            "rejected": [item.to_json() for item in self.rejected],
        }


@dataclass(slots=True)
class CursorState:
    """Resume position for one partition plus what this session already showed."""

    partition_key: str
    next_offset: int = 0
    seen_this_session: set[int] = field(default_factory=set)

    def __post_init__(self) -> None:
        if self.next_offset < 0:
            raise ValueError("next_offset must be non-negative")


@dataclass(slots=True, frozen=True)
class PartitionStats:
    kept: int
    collected: int
    rejected: int

    @classmethod
    def of(cls, partition: Partition) -> PartitionStats:
        return cls(
            kept=len(partition.kept),
            collected=sum(1 for item in partition.kept if item.collected),
            rejected=len(partition.rejected),
        )
