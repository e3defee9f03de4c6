"""Runtime wiring helper for CLI and API applications."""

from dataclasses import dataclass
from pathlib import Path

from .adapters.debounce import DebouncedStorage
from .adapters.fs_storage import FsStorage
from .adapters.idgen import HexId
from .config import FolioConfig, load_config
from .core.history import HistoryLog
from .core.ports import Notifier, StorageStrategy
from .core.session import Session
from .core.store import BlockStore
from .core.workspace import Workspace


@dataclass
class Runtime:
    """Container for all wired components."""
    store: BlockStore
    storage: StorageStrategy
    idgen: HexId
    config: FolioConfig

    @property
    def workspace(self) -> Workspace:
        return self.store.workspace

    def flush_due(self) -> bool:
        """Write out debounced changes whose window has elapsed."""
        if isinstance(self.storage, DebouncedStorage):
            return self.storage.check_and_flush()
        return False

    def close(self) -> None:
        """Write out anything a debounced storage is still holding."""
        if isinstance(self.storage, DebouncedStorage):
            self.storage.flush()


def build_runtime(
    workspace_path: Path | None = None,
    config_path: Path | None = None,
    storage: StorageStrategy | None = None,
    notifier: Notifier | None = None,
) -> Runtime:
    """Build and wire all components for a workspace."""
    config = load_config(config_path=config_path, workspace_path=workspace_path)

    if workspace_path is None:
        workspace_path = config.workspace.root

    if storage is None:
        storage = FsStorage(workspace_path)
        if config.persist.debounce_ms > 0:
            storage = DebouncedStorage(storage, debounce_ms=config.persist.debounce_ms)

    idgen = HexId(nbytes=config.id.bytes)
    session = Session(history=HistoryLog(max_size=config.history.max_size, notifier=notifier))
    session.broken_links.restore(storage.load_state())
    store = BlockStore(
        Workspace(storage),
        idgen,
        session,
        max_indent=config.editor.max_indent,
        title_sync_default=config.editor.title_sync,
    )

    return Runtime(store=store, storage=storage, idgen=idgen, config=config)
