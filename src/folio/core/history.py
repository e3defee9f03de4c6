"""Undo/redo log.

Actions hold Operation descriptors rather than closures. Undoing an action
hands its ``undo`` operation to the executor (the BlockStore), which
applies it to whatever the document looks like at that moment.
"""

import logging
from collections.abc import Callable

from .model import HistoryAction, Operation
from .ports import Notifier

logger = logging.getLogger(__name__)

MAX_HISTORY_SIZE = 50


class LoggingNotifier(Notifier):
    def notify(self, message: str, kind: str = "info") -> None:
        logger.info("%s", message)


class HistoryLog:
    def __init__(
        self,
        max_size: int = MAX_HISTORY_SIZE,
        notifier: Notifier | None = None,
    ):
        self.max_size = max_size
        self.notifier: Notifier = notifier or LoggingNotifier()
        self.past: list[HistoryAction] = []
        self.future: list[HistoryAction] = []
        self._executor: Callable[[Operation], None] | None = None
        self._replaying = False

    def bind(self, executor: Callable[[Operation], None]) -> None:
        """Attach the callable that replays operations."""
        self._executor = executor

    @property
    def can_undo(self) -> bool:
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)

    @property
    def replaying(self) -> bool:
        return self._replaying

    def push_action(self, kind: str, description: str, undo: Operation, redo: Operation) -> HistoryAction | None:
        """Record an action; any redo history is discarded.

        Pushes made while an undo/redo is being replayed are ignored.
        """
        if self._replaying:
            return None
        action = HistoryAction(kind=kind, description=description, undo=undo, redo=redo)
        self.past.append(action)
        if len(self.past) > self.max_size:
            del self.past[0]
        self.future.clear()
        logger.debug("history push %s: %s", kind, description)
        return action

    def undo(self) -> HistoryAction | None:
        if not self.past:
            self.notifier.notify("Nothing to undo", "undo")
            return None
        action = self.past[-1]
        self._run(action.undo)
        self.past.pop()
        self.future.append(action)
        self.notifier.notify(f"Undone: {action.description}", "undo")
        return action

    def redo(self) -> HistoryAction | None:
        if not self.future:
            self.notifier.notify("Nothing to redo", "redo")
            return None
        action = self.future[-1]
        self._run(action.redo)
        self.future.pop()
        self.past.append(action)
        self.notifier.notify(f"Redone: {action.description}", "redo")
        return action

    def clear(self) -> None:
        self.past.clear()
        self.future.clear()

    def _run(self, operation: Operation) -> None:
        if self._executor is None:
            raise RuntimeError("HistoryLog has no executor bound")
        self._replaying = True
        try:
            self._executor(operation)
        finally:
            self._replaying = False
