"""Translate IGDB payloads into domain items."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gamesift.domain.model import Item

from .schema import GamePayload

if TYPE_CHECKING:
    from collections.abc import Mapping

IMAGE_BASE_URL = "https://images.igdb.com/igdb/image/upload"


def parse_item(payload: GamePayload | Mapping[str, object]) -> Item:
    game = payload if isinstance(payload, GamePayload) else GamePayload.model_validate(payload)
    return Item(
        id=game.id,
        name=game.name,
        slug=game.slug,
        cover_ref=game.cover.image_id if game.cover is not None else None,
    )


def cover_url(image_id: str, size: str = "cover_big") -> str:
    """Image URL for an IGDB image id (``cover_small``, ``cover_big``, ``720p``, ...)."""

    return f"{IMAGE_BASE_URL}/t_{size}/{image_id}.jpg"
