import io
from typing import Any

import yaml

from ..core.meta import MetaBag
from ..core.model import Block, Document
from ..core.ports import DocumentCodec


class YamlDocumentCodec(DocumentCodec):
    """One YAML mapping per document; blocks are a list of field mappings."""

    def to_data(self, document: Document) -> dict[str, Any]:
        data: dict[str, Any] = {"id": document.id, "title": document.title}
        if document.parent_id is not None:
            data["parent_id"] = document.parent_id
        data["created_at"] = document.created_at
        data["updated_at"] = document.updated_at
        if document.meta:
            data["meta"] = document.meta.to_dict()
        data["blocks"] = [block.to_dict() for block in document.blocks]
        return data

    def from_data(self, data: dict[str, Any]) -> Document:
        if not isinstance(data, dict) or "id" not in data:
            raise ValueError("document mapping needs an 'id'")
        kwargs: dict[str, Any] = {
            "id": str(data["id"]),
            "title": data.get("title") or "",
            "blocks": [Block.from_dict(b) for b in data.get("blocks") or []],
            "meta": MetaBag(data.get("meta") or {}),
            "parent_id": data.get("parent_id"),
        }
        # Missing timestamps fall back to "now"
        for key in ("created_at", "updated_at"):
            if data.get(key):
                kwargs[key] = str(data[key])
        return Document(**kwargs)

    def encode(self, document: Document) -> str:
        buf = io.StringIO()
        yaml.safe_dump(self.to_data(document), buf, sort_keys=False, allow_unicode=True)
        return buf.getvalue()

    def decode(self, text: str) -> Document:
        try:
            data = yaml.safe_load(io.StringIO(text))
        except yaml.YAMLError as e:
            raise ValueError(f"invalid YAML: {e}") from e
        return self.from_data(data)
