"""Errors surfaced by the triage domain."""

from __future__ import annotations


class TriageError(Exception):
    """Base class for domain-level failures."""


class UpstreamUnavailable(TriageError):
    """A remote dependency (catalog or entity store) failed or timed out."""


class NoSurvivingItems(TriageError):
    """The catalog for a partition has nothing left to triage."""

    def __init__(self, partition_key: str) -> None:
        super().__init__(f"No untriaged items left for partition {partition_key}")
        self.partition_key = partition_key


class InvalidImportFormat(TriageError):
    """An import file could not be parsed into entries."""


class NoConfidentMatch(TriageError):
    """No catalog candidate was similar enough to an external name."""

    def __init__(self, name: str, best_score: float | None = None) -> None:
        detail = "no candidates" if best_score is None else f"best score {best_score:.2f}"
        super().__init__(f"No confident match for {name!r} ({detail})")
        self.name = name
        self.best_score = best_score


class SessionStateError(TriageError):
    """An operation was requested that the session cannot perform right now."""


class SelectionChanged(TriageError):
    """The active partition changed while work for the previous one was in flight."""

    def __init__(self, abandoned_key: str) -> None:
        super().__init__(f"Partition {abandoned_key} was deselected; result discarded")
        self.abandoned_key = abandoned_key


__all__ = [
    "InvalidImportFormat",
    "NoConfidentMatch",
    "NoSurvivingItems",
    "SelectionChanged",
    "SessionStateError",
    "TriageError",
    "UpstreamUnavailable",
]
