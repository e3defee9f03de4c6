"""Configuration loader for folio.toml."""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_NAME = "folio.toml"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


@dataclass
class WorkspaceConfig:
    """Where document files live."""
    root: Path


@dataclass
class IdConfig:
    """ID generation configuration."""
    bytes: int = 6


@dataclass
class HistoryConfig:
    max_size: int = 50


@dataclass
class EditorConfig:
    """Editing defaults applied by the block store."""
    title_sync: bool = True
    max_indent: int = 10


@dataclass
class PersistConfig:
    debounce_ms: int = 0


@dataclass
class LogConfig:
    level: str = "WARNING"


@dataclass
class FolioConfig:
    """Complete folio configuration."""
    workspace: WorkspaceConfig
    id: IdConfig = field(default_factory=IdConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    editor: EditorConfig = field(default_factory=EditorConfig)
    persist: PersistConfig = field(default_factory=PersistConfig)
    log: LogConfig = field(default_factory=LogConfig)


def _int(section: dict[str, Any], key: str, default: int, minimum: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    return value


def _bool(section: dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def load_config(config_path: Path | None = None, workspace_path: Path | None = None) -> FolioConfig:
    """
    Load configuration from folio.toml.

    Search order:
    1. config_path (if provided)
    2. cwd/folio.toml
    3. workspace_path/folio.toml

    Args:
        config_path: Explicit path to config file
        workspace_path: Workspace root used for the fallback search

    Returns:
        FolioConfig with resolved settings

    Raises:
        ValueError: when a value has the wrong type or range
    """
    toml_data: dict[str, Any] = {}

    search_paths = []
    if config_path:
        search_paths.append(config_path)
    search_paths.append(Path.cwd() / CONFIG_NAME)
    if workspace_path:
        search_paths.append(workspace_path / CONFIG_NAME)

    for path in search_paths:
        if path.exists():
            with open(path, "rb") as f:
                try:
                    toml_data = tomllib.load(f)
                except tomllib.TOMLDecodeError as e:
                    raise ValueError(f"{path}: {e}") from e
            break

    ws_data = toml_data.get("workspace", {})
    workspace = WorkspaceConfig(root=Path(ws_data.get("root", workspace_path or Path("./workspace"))))

    id_data = toml_data.get("id", {})
    history_data = toml_data.get("history", {})
    editor_data = toml_data.get("editor", {})
    persist_data = toml_data.get("persist", {})
    log_data = toml_data.get("log", {})

    level = str(log_data.get("level", "WARNING")).upper()
    if level not in logging.getLevelNamesMapping():
        raise ValueError(f"unknown log level {level!r}")

    return FolioConfig(
        workspace=workspace,
        id=IdConfig(bytes=_int(id_data, "bytes", 6, 1)),
        history=HistoryConfig(max_size=_int(history_data, "max_size", 50, 1)),
        editor=EditorConfig(
            title_sync=_bool(editor_data, "title_sync", True),
            max_indent=_int(editor_data, "max_indent", 10, 0),
        ),
        persist=PersistConfig(debounce_ms=_int(persist_data, "debounce_ms", 0, 0)),
        log=LogConfig(level=level),
    )


def configure_logging(level: str = "WARNING") -> logging.Logger:
    """Attach one stream handler to the "folio" logger and set its level."""
    logger = logging.getLogger("folio")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger
