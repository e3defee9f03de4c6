from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .meta import MetaBag

DocumentId = str
BlockId = str


class BlockType(str, Enum):
    """Closed set of block types a document may contain."""

    TEXT = "text"
    HEADING1 = "heading1"
    HEADING2 = "heading2"
    HEADING3 = "heading3"
    HEADING4 = "heading4"
    BULLET_LIST = "bulletList"
    NUMBERED_LIST = "numberedList"
    CHECKBOX = "checkbox"
    CHECKBOX_NUMBERED_LIST = "checkboxNumberedList"
    QUOTE = "quote"
    DIVIDER = "divider"
    CALLOUT = "callout"
    CODE = "code"
    IMAGE = "image"
    FILE = "file"
    EMBED = "embed"
    PAGE_LINK = "pageLink"
    SPACE_EMBED = "spaceEmbed"
    BLOCK_EMBED = "blockEmbed"


HEADING_TYPES = frozenset({
    BlockType.HEADING1,
    BlockType.HEADING2,
    BlockType.HEADING3,
    BlockType.HEADING4,
})

LIST_TYPES = frozenset({
    BlockType.BULLET_LIST,
    BlockType.NUMBERED_LIST,
    BlockType.CHECKBOX,
    BlockType.CHECKBOX_NUMBERED_LIST,
})

NUMBERED_TYPES = frozenset({
    BlockType.NUMBERED_LIST,
    BlockType.CHECKBOX_NUMBERED_LIST,
})

CHECKABLE_TYPES = frozenset({
    BlockType.CHECKBOX,
    BlockType.CHECKBOX_NUMBERED_LIST,
})

# Types whose content can be merged into the previous block on backspace
MERGEABLE_TYPES = HEADING_TYPES | LIST_TYPES | {
    BlockType.TEXT,
    BlockType.QUOTE,
    BlockType.CALLOUT,
}

# An empty block of these types becomes plain text on enter
ENTER_RESETS_TYPES = HEADING_TYPES | LIST_TYPES | {BlockType.CALLOUT}


def list_family(block_type: BlockType) -> str | None:
    """Family used for grouping runs: "bullet", "numbered", "checkbox" or None."""
    if block_type in NUMBERED_TYPES:
        return "numbered"
    if block_type == BlockType.BULLET_LIST:
        return "bullet"
    if block_type == BlockType.CHECKBOX:
        return "checkbox"
    return None


def heading_level(block_type: BlockType) -> int | None:
    if block_type in HEADING_TYPES:
        return int(block_type.value[-1])
    return None


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Range:
    start: int  # character offsets, end exclusive
    end: int


@dataclass(frozen=True)
class LinkInfo:
    target_id: DocumentId
    title: str
    storage: Range
    display: Range
    separator: str = "|"  # "|" or legacy ":"


@dataclass
class Block:
    id: BlockId
    type: BlockType = BlockType.TEXT
    content: str = ""
    checked: bool | None = None
    indent: int | None = None
    list_number: int | None = None  # manual numbering override
    collapsed: bool | None = None  # headings only
    language: str | None = None  # code
    callout_color: str | None = None
    callout_icon: str | None = None
    divider_variant: str | None = None  # "regular" | "stop"
    target_document_id: DocumentId | None = None  # pageLink, spaceEmbed
    target_block_id: BlockId | None = None  # blockEmbed
    source_document_id: DocumentId | None = None  # blockEmbed
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_trailing_placeholder(self) -> bool:
        return self.type == BlockType.TEXT and self.content == ""

    def copy(self) -> Block:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Serialize every field that is set; unset optionals are omitted."""
        out: dict[str, Any] = {"id": self.id, "type": self.type.value, "content": self.content}
        for f in fields(self):
            if f.name in out:
                continue
            value = getattr(self, f.name)
            if value is None or (f.name == "metadata" and not value):
                continue
            out[f.name] = copy.deepcopy(value)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Block:
        known = {f.name for f in fields(cls)}
        kwargs = {k: copy.deepcopy(v) for k, v in data.items() if k in known}
        kwargs["type"] = BlockType(kwargs.get("type", BlockType.TEXT.value))
        kwargs.setdefault("content", "")
        kwargs["content"] = kwargs["content"] or ""
        return cls(**kwargs)


@dataclass
class Document:
    id: DocumentId
    title: str = ""
    blocks: list[Block] = field(default_factory=list)
    meta: MetaBag = field(default_factory=MetaBag)
    parent_id: DocumentId | None = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def index_of(self, block_id: BlockId) -> int:
        for i, block in enumerate(self.blocks):
            if block.id == block_id:
                return i
        return -1

    def find(self, block_id: BlockId) -> Block | None:
        i = self.index_of(block_id)
        return self.blocks[i] if i >= 0 else None

    def first_heading(self) -> Block | None:
        for block in self.blocks:
            if block.type in HEADING_TYPES:
                return block
        return None

    def touch(self) -> None:
        self.updated_at = now_iso()


@dataclass(frozen=True)
class Operation:
    """Serializable mutation descriptor replayed against live state.

    kind is one of "set_fields", "insert_blocks", "remove_blocks",
    "reorder_blocks" or "batch"; payload is plain data.
    """

    kind: str
    document_id: DocumentId
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HistoryAction:
    kind: str
    description: str
    undo: Operation
    redo: Operation
    timestamp: float = field(default_factory=time.time)
