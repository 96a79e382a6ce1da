"""Catalog items and the lists they can be triaged into."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import StrEnum


class TriageList(StrEnum):
    KEPT = "kept"
    REJECTED = "rejected"
    PENDING = "pending"


@dataclass(slots=True)
class Item:
    """A catalog entry identified by its stable catalog id.

    Everything except ``collected`` is treated as immutable; ``collected`` only
    carries meaning while the item sits in the kept list.
    """

    id: int
    name: str
    cover_ref: str | None = None
    slug: str | None = None
    collected: bool = False

    def with_collected(self, collected: bool) -> Item:
        return replace(self, collected=collected)

    def to_json(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "cover_ref": self.cover_ref,
            "collected": self.collected,
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, object]) -> Item:
        raw_id = payload["id"]
        if isinstance(raw_id, bool) or not isinstance(raw_id, int | str):
            raise ValueError(f"Invalid item id: {raw_id!r}")
        cover_ref = payload.get("cover_ref")
        legacy_cover = payload.get("cover")
        if cover_ref is None and isinstance(legacy_cover, Mapping):
            cover_ref = legacy_cover.get("image_id")
        slug = payload.get("slug")
        return cls(
            id=int(raw_id),
            name=str(payload.get("name") or ""),
            cover_ref=str(cover_ref) if cover_ref else None,
            slug=str(slug) if slug else None,
            collected=bool(payload.get("collected", False)),
        )
