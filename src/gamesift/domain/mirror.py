"""Composition of the authoritative entity store with the local mirror.

The entity store always wins when it answers. The mirror only serves reads
while the store is unreachable and holds commits that could not be delivered
until :meth:`MirroredPartitionStore.flush_pending` gets them through.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from gamesift.domain.errors import UpstreamUnavailable
from gamesift.domain.model import Item, Partition

if TYPE_CHECKING:
    from collections.abc import Sequence

    from gamesift.domain.ports import EntityStore, JsonBlob, LocalMirror

log = getLogger(__name__)

PARTITION_PREFIX = "partition:"
CURSOR_PREFIX = "cursor:"


@dataclass(slots=True, frozen=True)
class CommitOutcome:
    """Result of committing one partition.

    ``partition`` is what the store committed when ``saved`` is true, otherwise
    the value that was attempted and parked in the mirror.
    """

    partition: Partition
    saved: bool
    warning: str | None = None


def partition_mirror_key(partition_key: str) -> str:
    return f"{PARTITION_PREFIX}{partition_key}"


def cursor_mirror_key(partition_key: str) -> str:
    return f"{CURSOR_PREFIX}{partition_key}"


def _partition_to_blob(partition: Partition, *, pending: bool) -> dict[str, object]:
    blob = partition.to_json()
    blob["pending"] = pending
    return blob


def _partition_from_blob(partition_key: str, blob: JsonBlob) -> Partition:
    kept, rejected = blob.get("kept", []), blob.get("rejected", [])
    if not isinstance(kept, list) or not isinstance(rejected, list):
        raise ValueError("mirror entry lists are malformed")
    return Partition.build(
        partition_key,
        kept=[Item.from_json(entry) for entry in kept if isinstance(entry, Mapping)],
        rejected=[Item.from_json(entry) for entry in rejected if isinstance(entry, Mapping)],
    )


class MirroredPartitionStore:
    def __init__(self, store: EntityStore, mirror: LocalMirror) -> None:
        self._store = store
        self._mirror = mirror

    async def load(self, partition_key: str) -> Partition:
        try:
            partition = await self._store.get(partition_key)
        except UpstreamUnavailable as exc:
            log.warning("Entity store unavailable for %s, reading mirror: %s", partition_key, exc)
            entry = self._read(partition_key)
            return entry[0] if entry is not None else Partition(key=partition_key)

        entry = self._read(partition_key)
        if entry is not None and entry[1]:
            log.warning("Mirror holds unsaved changes for %s; not overwriting them", partition_key)
        else:
            self._write(partition, pending=False)
        return partition

    async def commit(
        self, partition_key: str, kept: Sequence[Item], rejected: Sequence[Item]
    ) -> CommitOutcome:
        attempted = Partition.build(partition_key, kept, rejected)
        try:
            committed = await self._store.put_one(
                partition_key, attempted.kept, attempted.rejected
            )
        except UpstreamUnavailable as exc:
            warning = f"Partition {partition_key} might not be saved: {exc}"
            log.warning(warning)
            self._write(attempted, pending=True)
            return CommitOutcome(partition=attempted, saved=False, warning=warning)
        self._write(committed, pending=False)
        return CommitOutcome(partition=committed, saved=True)

    async def flush_pending(self, partition_key: str) -> CommitOutcome | None:
        """Resend a parked commit for ``partition_key``; ``None`` when nothing is parked."""

        entry = self._read(partition_key)
        if entry is None or not entry[1]:
            return None
        parked = entry[0]
        try:
            committed = await self._store.put_one(partition_key, parked.kept, parked.rejected)
        except UpstreamUnavailable as exc:
            log.info("Pending changes for %s still not deliverable: %s", partition_key, exc)
            return CommitOutcome(partition=parked, saved=False, warning=str(exc))
        log.info("Delivered pending changes for %s", partition_key)
        self._write(committed, pending=False)
        return CommitOutcome(partition=committed, saved=True)

    async def clear(self, partition_key: str) -> None:
        await self._store.delete_one(partition_key)
        try:
            self._mirror.delete(partition_mirror_key(partition_key))
        except OSError as exc:
            log.warning("Could not drop mirror entry for %s: %s", partition_key, exc)

    def pending_keys(self) -> list[str]:
        keys: list[str] = []
        for key in self._mirror.keys():
            if not key.startswith(PARTITION_PREFIX):
                continue
            blob = self._mirror.read(key)
            if blob is not None and blob.get("pending"):
                keys.append(key.removeprefix(PARTITION_PREFIX))
        return keys

    def _read(self, partition_key: str) -> tuple[Partition, bool] | None:
        blob = self._mirror.read(partition_mirror_key(partition_key))
        if blob is None:
            return None
        try:
            partition = _partition_from_blob(partition_key, blob)
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Ignoring unreadable mirror entry for %s: %s", partition_key, exc)
            return None
        return partition, bool(blob.get("pending", False))

    def _write(self, partition: Partition, *, pending: bool) -> None:
        try:
            self._mirror.write(
                partition_mirror_key(partition.key), _partition_to_blob(partition, pending=pending)
            )
        except OSError as exc:
            log.warning("Could not mirror partition %s: %s", partition.key, exc)


class MirrorCursorStore:
    """Resume offsets kept in the local mirror."""

    def __init__(self, mirror: LocalMirror) -> None:
        self._mirror = mirror

    async def get_offset(self, partition_key: str) -> int:
        blob = self._mirror.read(cursor_mirror_key(partition_key))
        if blob is None:
            return 0
        offset = blob.get("next_offset", 0)
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            log.warning("Ignoring invalid mirrored offset for %s: %r", partition_key, offset)
            return 0
        return offset

    async def set_offset(self, partition_key: str, offset: int) -> None:
        try:
            self._mirror.write(cursor_mirror_key(partition_key), {"next_offset": offset})
        except OSError as exc:
            raise UpstreamUnavailable(f"Could not store offset for {partition_key}") from exc
