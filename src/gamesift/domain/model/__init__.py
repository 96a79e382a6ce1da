"""Domain model for catalog triage."""

from __future__ import annotations

from .decisions import Decision, Keep, Reject, Undo, parse_decision
from .item import Item, TriageList
from .partition import CursorState, Partition, PartitionStats
from .reconciliation import ExternalEntry, ReconciliationRecord

__all__ = [
    "CursorState",
    "Decision",
    "ExternalEntry",
    "Item",
    "Keep",
    "Partition",
    "PartitionStats",
    "ReconciliationRecord",
    "Reject",
    "TriageList",
    "Undo",
    "parse_decision",
]
