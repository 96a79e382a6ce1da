"""Transaction boundary around the triage repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from types import TracebackType

    from gamesift.domain.ports.persistence import CursorRepository, PartitionRepository


@dataclass(slots=True)
class TriageRepositories:
    partitions: PartitionRepository
    cursors: CursorRepository


class TriageUnitOfWork(Protocol):
    """Changes made through ``repositories`` persist only after :meth:`commit`."""

    @property
    def repositories(self) -> TriageRepositories: ...

    def __enter__(self) -> TriageUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
