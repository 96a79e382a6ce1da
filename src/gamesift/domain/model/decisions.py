"""Closed set of triage decisions a caller can make about an item."""

from __future__ import annotations

from dataclasses import dataclass

from .item import TriageList


@dataclass(slots=True, frozen=True)
class Keep:
    pass


@dataclass(slots=True, frozen=True)
class Reject:
    pass


@dataclass(slots=True, frozen=True)
class Undo:
    from_list: TriageList
    to_list: TriageList = TriageList.PENDING

    def __post_init__(self) -> None:
        if self.from_list is TriageList.PENDING:
            raise ValueError("Only kept or rejected items can be undone")
        if self.from_list is self.to_list:
            raise ValueError("Undo must move the item to a different list")


type Decision = Keep | Reject | Undo

_LEGACY_ACTIONS = {
    "save": Keep(),
    "keep": Keep(),
    "delete": Reject(),
    "reject": Reject(),
}


def parse_decision(
    action: str,
    *,
    from_list: TriageList | str | None = None,
    to_list: TriageList | str = TriageList.PENDING,
) -> Decision:
    """Resolve a loosely typed action name into a :data:`Decision`.

    ``from_list`` accepts the historical list names ``favorites`` and ``deleted``.
    """

    normalized = action.strip().lower()
    if normalized in _LEGACY_ACTIONS:
        return _LEGACY_ACTIONS[normalized]
    if normalized in {"revert", "undo"}:
        if from_list is None:
            raise ValueError(f"Action {action!r} requires the list the item is in")
        return Undo(from_list=_parse_list(from_list), to_list=_parse_list(to_list))
    raise ValueError(f"Unknown triage action: {action!r}")


def _parse_list(value: TriageList | str) -> TriageList:
    if isinstance(value, TriageList):
        return value
    aliases = {"favorites": TriageList.KEPT, "deleted": TriageList.REJECTED}
    normalized = value.strip().lower()
    if normalized in aliases:
        return aliases[normalized]
    return TriageList(normalized)
