"""Pydantic models for partition snapshots exchanged as JSON.

The same shape is used by the HTTP entity store, by snapshot import files and
by exports. Historical files name the lists ``favorites``/``deleted`` and carry
covers as ``{"image_id": ...}``; both are accepted on input.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from gamesift.domain.model import Item, Partition


class SnapshotBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ItemPayload(SnapshotBaseModel):
    id: int
    name: str = ""
    slug: str | None = None
    cover_ref: str | None = None
    collected: bool = False

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_cover(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        data = dict(cast(Mapping[str, object], value))
        cover = data.get("cover")
        if data.get("cover_ref") is None and isinstance(cover, Mapping):
            data["cover_ref"] = cast(Mapping[str, object], cover).get("image_id")
        return data

    def to_item(self) -> Item:
        return Item(
            id=self.id,
            name=self.name,
            slug=self.slug,
            cover_ref=self.cover_ref,
            collected=self.collected,
        )

    @classmethod
    def from_item(cls, item: Item) -> ItemPayload:
        return cls(
            id=item.id,
            name=item.name,
            slug=item.slug,
            cover_ref=item.cover_ref,
            collected=item.collected,
        )


class PartitionPayload(SnapshotBaseModel):
    partition_key: str | None = None
    kept: list[ItemPayload] = Field(
        default_factory=list, validation_alias=AliasChoices("kept", "favorites")
    )
    rejected: list[ItemPayload] = Field(
        default_factory=list, validation_alias=AliasChoices("rejected", "deleted")
    )

    def to_partition(self, partition_key: str) -> Partition:
        return Partition.build(
            partition_key,
            kept=[item.to_item() for item in self.kept],
            rejected=[item.to_item() for item in self.rejected],
        )

    @classmethod
    def from_partition(cls, partition: Partition) -> PartitionPayload:
        return cls(
            partition_key=partition.key,
            kept=[ItemPayload.from_item(item) for item in partition.kept],
            rejected=[ItemPayload.from_item(item) for item in partition.rejected],
        )
