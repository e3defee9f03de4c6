import copy
from typing import Any, Iterable

from ..core.model import Document
from ..core.ports import StorageStrategy


class MemoryStorage(StorageStrategy):
    """Keeps deep copies of the last persisted collection; used in tests and scratch sessions."""

    def __init__(self, documents: Iterable[Document] = (), state: dict[str, Any] | None = None):
        self.snapshot: list[Document] = [copy.deepcopy(d) for d in documents]
        self.state: dict[str, Any] = copy.deepcopy(state or {})
        self.writes = 0

    def load(self) -> list[Document]:
        return [copy.deepcopy(d) for d in self.snapshot]

    def persist(self, documents: Iterable[Document]) -> None:
        self.snapshot = [copy.deepcopy(d) for d in documents]
        self.writes += 1

    def load_state(self) -> dict[str, Any]:
        return copy.deepcopy(self.state)

    def persist_state(self, state: dict[str, Any]) -> None:
        self.state = copy.deepcopy(state)
