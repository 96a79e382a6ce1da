"""JSON file implementation of the local mirror."""

from __future__ import annotations

import json
import os
import tempfile
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, cast

from gamesift.domain.ports import LocalMirror

if TYPE_CHECKING:
    from gamesift.domain.ports import JsonBlob

log = getLogger(__name__)


class JsonFileMirror:
    """Key to JSON blob mapping stored as one JSON document.

    Writes go to a temporary file in the same directory that then replaces the
    target, so a crash never leaves a half-written mirror behind.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def read(self, key: str) -> JsonBlob | None:
        return self._load().get(key)

    def write(self, key: str, blob: JsonBlob) -> None:
        document = self._load()
        document[key] = dict(blob)
        self._save(document)

    def delete(self, key: str) -> None:
        document = self._load()
        if document.pop(key, None) is not None:
            self._save(document)

    def keys(self) -> list[str]:
        return sorted(self._load())

    def _load(self) -> dict[str, dict[str, object]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            log.warning("Could not read mirror %s: %s", self.path, exc)
            return {}
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as exc:
            log.warning("Mirror %s is corrupt, ignoring it: %s", self.path, exc)
            return {}
        if not isinstance(document, dict):
            log.warning("Mirror %s does not hold a JSON object, ignoring it", self.path)
            return {}
        entries = cast(dict[str, object], document)
        return {
            key: cast(dict[str, object], value)
            for key, value in entries.items()
            if isinstance(value, dict)
        }

    def _save(self, document: dict[str, dict[str, object]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


if TYPE_CHECKING:
    _mirror_check: LocalMirror = JsonFileMirror("mirror.json")
