from typing import Protocol, Iterable, Any
from .model import DocumentId, Document


class StorageStrategy(Protocol):
    """
    Persistence collaborator. The engine hands over the whole collection
    after each mutation; the encoding is the adapter's business.
    """

    def load(self) -> list[Document]:
        pass

    def persist(self, documents: Iterable[Document]) -> None:
        pass

    def load_state(self) -> dict[str, Any]:
        """Workspace-level state such as deleted document ids; {} when none."""
        pass

    def persist_state(self, state: dict[str, Any]) -> None:
        pass


class DocumentCodec(Protocol):
    """
    Lossless round-trip of a document to text.
    """

    def encode(self, document: Document) -> str:
        pass

    def decode(self, text: str) -> Document:
        pass


class IdGenerator(Protocol):
    def new_id(self) -> str:
        pass


class Notifier(Protocol):
    """
    Lightweight, non-blocking user feedback (snackbar, status line, log).
    kind is "undo", "redo" or "info".
    """

    def notify(self, message: str, kind: str = "info") -> None:
        pass


class StoreListener(Protocol):
    """
    Navigation collaborator: keeps open views in step with the engine.
    """

    def on_title_changed(self, document_id: DocumentId, title: str) -> None:
        pass

    def on_document_deleted(self, document_id: DocumentId) -> None:
        pass


class OperationExecutor(Protocol):
    def apply_operation(self, operation: Any) -> None:
        pass
