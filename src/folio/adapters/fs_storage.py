import hashlib
import logging
from pathlib import Path
from typing import Any, Iterable

import yaml

from ..core.model import Document
from ..core.ports import DocumentCodec, StorageStrategy
from .yaml_codec import YamlDocumentCodec

logger = logging.getLogger(__name__)

# Not a valid document id: "_" is outside the id alphabet of link tokens
STATE_NAME = "_workspace"


class FsStorage(StorageStrategy):
    """One ``<id>.yaml`` file per document under root.

    Only documents whose encoded text changed since the last load/persist
    are rewritten; files of documents no longer in the collection are
    removed. Workspace state lives beside them in ``_workspace.yaml``.
    """

    suffix = ".yaml"

    def __init__(self, root: Path, codec: DocumentCodec | None = None):
        self.root = root
        self.codec = codec or YamlDocumentCodec()
        self._hashes: dict[str, str] = {}

    def _path(self, id: str) -> Path:
        return self.root / f"{id}{self.suffix}"

    @staticmethod
    def _digest(text: str) -> str:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    def read_raw(self, id: str) -> str | None:
        p = self._path(id)
        return p.read_text(encoding="utf-8") if p.exists() else None

    def write_raw(self, id: str, contents: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self._path(id).write_text(contents, encoding="utf-8")

    def delete_raw(self, id: str) -> None:
        p = self._path(id)
        if p.exists():
            p.unlink()

    def list_all_ids(self) -> Iterable[str]:
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob(f"*{self.suffix}") if p.stem != STATE_NAME)

    def load(self) -> list[Document]:
        docs = []
        self._hashes.clear()
        for id in self.list_all_ids():
            text = self.read_raw(id)
            if text is None:
                continue
            try:
                doc = self.codec.decode(text)
            except ValueError as e:
                logger.warning("skipping unreadable document file %s: %s", self._path(id), e)
                continue
            if doc.id != id:
                logger.warning("file %s holds document %s; using the file name", self._path(id), doc.id)
                doc.id = id
            self._hashes[id] = self._digest(text)
            docs.append(doc)
        logger.info("loaded %d document(s) from %s", len(docs), self.root)
        return docs

    def persist(self, documents: Iterable[Document]) -> None:
        seen = set()
        written = 0
        for doc in documents:
            seen.add(doc.id)
            text = self.codec.encode(doc)
            digest = self._digest(text)
            if self._hashes.get(doc.id) == digest:
                continue
            self.write_raw(doc.id, text)
            self._hashes[doc.id] = digest
            written += 1

        stale = [id for id in self.list_all_ids() if id not in seen]
        for id in stale:
            self.delete_raw(id)
            self._hashes.pop(id, None)
        if written or stale:
            logger.debug("persisted %d document(s), removed %d", written, len(stale))

    def load_state(self) -> dict[str, Any]:
        text = self.read_raw(STATE_NAME)
        if text is None:
            return {}
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            logger.warning("ignoring unreadable workspace state %s: %s", self._path(STATE_NAME), e)
            return {}
        return data if isinstance(data, dict) else {}

    def persist_state(self, state: dict[str, Any]) -> None:
        self.write_raw(STATE_NAME, yaml.safe_dump(state, sort_keys=False, allow_unicode=True))
