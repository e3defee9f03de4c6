"""Write batching for storage adapters."""

import logging
import time
from collections.abc import Callable
from typing import Any, Iterable

from ..core.model import Document
from ..core.ports import StorageStrategy

logger = logging.getLogger(__name__)


class DebouncedStorage(StorageStrategy):
    """Wraps another storage and collapses bursts of persist() calls.

    persist() only remembers the collection. The wrapped storage is written
    by check_and_flush() once debounce_ms have passed since the last call,
    or by flush(). A debounce of 0 writes through immediately.
    """

    def __init__(
        self,
        inner: StorageStrategy,
        debounce_ms: int = 150,
        clock: Callable[[], float] = time.time,
    ):
        self.inner = inner
        self.debounce_ms = debounce_ms
        self.clock = clock
        self.pending: list[Document] | None = None
        self.last_event_time = 0.0

    def load(self) -> list[Document]:
        return self.inner.load()

    def persist(self, documents: Iterable[Document]) -> None:
        self.pending = list(documents)
        self.last_event_time = self.clock()
        if self.debounce_ms <= 0:
            self.flush()

    def check_and_flush(self) -> bool:
        """Flush if the debounce period has elapsed."""
        if self.pending is None:
            return False
        elapsed = (self.clock() - self.last_event_time) * 1000
        if elapsed >= self.debounce_ms:
            self.flush()
            return True
        return False

    def flush(self) -> None:
        if self.pending is None:
            return
        documents, self.pending = self.pending, None
        self.inner.persist(documents)
        logger.debug("flushed %d document(s)", len(documents))

    def load_state(self) -> dict[str, Any]:
        return self.inner.load_state()

    def persist_state(self, state: dict[str, Any]) -> None:
        # Not debounced
        self.inner.persist_state(state)
