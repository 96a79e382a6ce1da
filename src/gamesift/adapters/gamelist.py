"""Parsers for files imported into a partition."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from gamesift.domain.errors import InvalidImportFormat
from gamesift.domain.model import ExternalEntry

from .payloads import PartitionPayload

if TYPE_CHECKING:
    from pathlib import Path

    from gamesift.domain.model import Partition

log = getLogger(__name__)

GAMELIST_FIELDS = ("desc", "developer", "publisher", "genre", "releasedate", "rating")


def parse_gamelist_xml(text: str | bytes) -> list[ExternalEntry]:
    """Read an EmulationStation style ``gamelist.xml``.

    Every ``<game>`` element becomes one entry; entries without a name are
    dropped since they cannot be searched for.
    """

    try:
        root = ET.fromstring(text)  # noqa: S314
    except ET.ParseError as exc:
        raise InvalidImportFormat(f"Invalid XML: {exc}") from exc

    entries: list[ExternalEntry] = []
    for game in root.iter("game"):
        name = (game.findtext("name") or "").strip()
        if not name:
            log.warning("Skipping <game> element without a name")
            continue
        metadata = {key: (game.findtext(key) or "").strip() for key in GAMELIST_FIELDS}
        entries.append(ExternalEntry(name=name, metadata=metadata))
    log.info("Found %d game(s) in gamelist", len(entries))
    return entries


def parse_snapshot_json(text: str | bytes, partition_key: str) -> Partition:
    """Validate a whole snapshot file; nothing is returned unless all of it is valid."""

    try:
        payload = PartitionPayload.model_validate_json(text)
    except ValidationError as exc:
        raise InvalidImportFormat(f"Invalid snapshot: {exc}") from exc
    return payload.to_partition(partition_key)


def read_gamelist(path: Path) -> list[ExternalEntry]:
    return parse_gamelist_xml(path.read_bytes())


def read_snapshot(path: Path, partition_key: str) -> Partition:
    return parse_snapshot_json(path.read_bytes(), partition_key)


def dump_snapshot(partition: Partition) -> str:
    return PartitionPayload.from_partition(partition).model_dump_json(indent=2)
