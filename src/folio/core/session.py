"""Per-workspace mutable state that outlives individual documents."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from .history import HistoryLog
from .model import DocumentId


class BrokenLinkSet:
    """Ids of deleted documents, with a version bumped once per deletion."""

    def __init__(self) -> None:
        self._ids: set[DocumentId] = set()
        self.version = 0

    def add_all(self, ids: Iterable[DocumentId]) -> None:
        self._ids.update(ids)
        self.version += 1

    def discard(self, id: DocumentId) -> None:
        self._ids.discard(id)

    def __contains__(self, id: object) -> bool:
        return id in self._ids

    def __iter__(self) -> Iterator[DocumentId]:
        return iter(sorted(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def to_state(self) -> dict[str, Any]:
        return {"deleted": sorted(self._ids), "version": self.version}

    def restore(self, state: dict[str, Any]) -> None:
        """Seed from a saved state; malformed entries are ignored."""
        deleted = state.get("deleted") or []
        if isinstance(deleted, list):
            self._ids.update(str(id) for id in deleted)
        version = state.get("version")
        if isinstance(version, int) and version > self.version:
            self.version = version


@dataclass
class Session:
    """Injected at engine construction; one per workspace."""

    history: HistoryLog = field(default_factory=HistoryLog)
    broken_links: BrokenLinkSet = field(default_factory=BrokenLinkSet)
