import logging
from collections.abc import Iterable
from typing import Any

from .model import Document, DocumentId
from .ports import StorageStrategy

logger = logging.getLogger(__name__)


class Workspace:
    """Arena of documents keyed by id; the tree lives in parent_id back-references."""

    def __init__(self, storage: StorageStrategy, documents: Iterable[Document] | None = None):
        self.storage = storage
        self._docs: dict[DocumentId, Document] = {}
        for doc in documents if documents is not None else storage.load():
            self._docs[doc.id] = doc

    def get(self, id: DocumentId) -> Document | None:
        return self._docs.get(id)

    def add(self, doc: Document) -> None:
        self._docs[doc.id] = doc

    def remove(self, id: DocumentId) -> Document | None:
        return self._docs.pop(id, None)

    def __contains__(self, id: object) -> bool:
        return id in self._docs

    def __len__(self) -> int:
        return len(self._docs)

    def documents(self) -> list[Document]:
        return list(self._docs.values())

    def list_ids(self) -> list[DocumentId]:
        return list(self._docs)

    def children(self, parent_id: DocumentId | None) -> list[Document]:
        return [d for d in self._docs.values() if d.parent_id == parent_id]

    def roots(self) -> list[Document]:
        return [d for d in self._docs.values() if d.parent_id is None or d.parent_id not in self._docs]

    def descendants(self, id: DocumentId) -> list[DocumentId]:
        """id followed by its whole subtree, depth first.

        Guarded by a visited set, so a corrupted tree with a cycle still
        terminates.
        """
        out: list[DocumentId] = []
        visited: set[DocumentId] = set()
        stack = [id]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            out.append(current)
            kids = [d.id for d in self.children(current)]
            stack.extend(reversed(kids))
        return out

    def is_descendant(self, ancestor: DocumentId, id: DocumentId) -> bool:
        return id != ancestor and id in self.descendants(ancestor)

    def ancestors(self, id: DocumentId) -> list[DocumentId]:
        out: list[DocumentId] = []
        visited = {id}
        doc = self.get(id)
        while doc is not None and doc.parent_id is not None and doc.parent_id not in visited:
            visited.add(doc.parent_id)
            out.append(doc.parent_id)
            doc = self.get(doc.parent_id)
        return out

    def persist(self) -> None:
        self.storage.persist(self.documents())

    def load_state(self) -> dict[str, Any]:
        return self.storage.load_state()

    def persist_state(self, state: dict[str, Any]) -> None:
        self.storage.persist_state(state)
