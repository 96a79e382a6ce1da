"""Ports implemented by adapters."""

from __future__ import annotations

from .catalog import CatalogClient
from .persistence import (
    CursorRepository,
    CursorStore,
    EntityStore,
    JsonBlob,
    LocalMirror,
    PartitionRepository,
)
from .unit_of_work import TriageRepositories, TriageUnitOfWork

__all__ = [
    "CatalogClient",
    "CursorRepository",
    "CursorStore",
    "EntityStore",
    "JsonBlob",
    "LocalMirror",
    "PartitionRepository",
    "TriageRepositories",
    "TriageUnitOfWork",
]
