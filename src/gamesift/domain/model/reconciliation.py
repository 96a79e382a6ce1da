"""Values exchanged while matching foreign lists against the catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .item import Item


@dataclass(slots=True, frozen=True)
class ExternalEntry:
    """An item described by an external list (name plus free-form metadata)."""

    name: str
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class ReconciliationRecord:
    entry: ExternalEntry
    item: Item
    similarity_score: float

    @property
    def external_name(self) -> str:
        return self.entry.name
