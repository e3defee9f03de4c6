"""Document API surface.

Every mutation follows the same cycle: change the block list, re-enforce the
trailing-block invariant, persist, and record one undoable action whose
operations are replayed against the live document.
"""

import copy
import logging
from collections.abc import Iterable, Sequence
from dataclasses import fields
from typing import Any

from ..format.links import DisplayText, split_links, to_display, to_storage
from .meta import TITLE_SYNC
from .model import (
    CHECKABLE_TYPES,
    ENTER_RESETS_TYPES,
    HEADING_TYPES,
    LIST_TYPES,
    MERGEABLE_TYPES,
    Block,
    BlockId,
    BlockType,
    Document,
    DocumentId,
    LinkInfo,
    Operation,
    heading_level,
)
from .numbering import BlockGroup, detect_groups, group_of, list_numbers
from .ports import IdGenerator, StoreListener
from .references import ReferenceIndex
from .session import Session
from .shortcuts import match_shortcut
from .workspace import Workspace

logger = logging.getLogger(__name__)

MAX_INDENT = 10
DEFAULT_TITLE = "New page"

MUTABLE_FIELDS = frozenset(f.name for f in fields(Block)) - {"id"}
# Changing only these never enters the history
UI_FIELDS = frozenset({"collapsed"})


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(value, hi))


def _plain(value: Any) -> Any:
    if isinstance(value, BlockType):
        return value.value
    if isinstance(value, (dict, list)):
        return copy.deepcopy(value)
    return value


def _values(block: Block, keys: Iterable[str]) -> dict[str, Any]:
    return {k: _plain(getattr(block, k)) for k in keys}


def _assign(block: Block, changes: dict[str, Any]) -> None:
    for key, value in changes.items():
        if key == "type":
            value = BlockType(value)
        elif key == "metadata":
            value = copy.deepcopy(value or {})
        setattr(block, key, value)


def _batch(document_id: DocumentId, *operations: Operation) -> Operation:
    return Operation(
        "batch",
        document_id,
        {"operations": [{"kind": op.kind, "payload": op.payload} for op in operations]},
    )


class BlockStore:
    def __init__(
        self,
        workspace: Workspace,
        idgen: IdGenerator,
        session: Session | None = None,
        *,
        max_indent: int = MAX_INDENT,
        title_sync_default: bool = True,
        listeners: Iterable[StoreListener] = (),
    ):
        self.workspace = workspace
        self.idgen = idgen
        self.session = session or Session()
        self.max_indent = max_indent
        self.title_sync_default = title_sync_default
        self.listeners: list[StoreListener] = list(listeners)
        self.references = ReferenceIndex(workspace, self.session.broken_links)
        self.session.history.bind(self.apply_operation)
        for doc in workspace.documents():
            self._repair(doc)

    # ------------------------------------------------------------------
    # Plumbing

    @property
    def history(self):
        return self.session.history

    def add_listener(self, listener: StoreListener) -> None:
        self.listeners.append(listener)

    def get_document(self, document_id: DocumentId) -> Document | None:
        return self.workspace.get(document_id)

    def _doc(self, document_id: DocumentId) -> Document | None:
        doc = self.workspace.get(document_id)
        if doc is None:
            logger.warning("unknown document %s", document_id)
        return doc

    def _block(self, doc: Document, block_id: BlockId) -> Block | None:
        block = doc.find(block_id)
        if block is None:
            logger.warning("unknown block %s in document %s", block_id, doc.id)
        return block

    def _new_block_id(self, doc: Document) -> BlockId:
        taken = {b.id for b in doc.blocks}
        while True:
            candidate = self.idgen.new_id()
            if candidate not in taken:
                return candidate

    def _new_document_id(self) -> DocumentId:
        while True:
            candidate = self.idgen.new_id()
            if candidate not in self.workspace and candidate not in self.session.broken_links:
                return candidate

    def _ensure_trailing(self, doc: Document) -> bool:
        if doc.blocks and doc.blocks[-1].is_trailing_placeholder:
            return False
        doc.blocks.append(Block(id=self._new_block_id(doc), type=BlockType.TEXT))
        return True

    def _repair(self, doc: Document) -> None:
        """Fix duplicate block ids and a missing trailing block on load."""
        seen: set[BlockId] = set()
        for block in doc.blocks:
            if block.id in seen:
                old = block.id
                block.id = self._new_block_id(doc)
                logger.warning("document %s: duplicate block id %s renamed to %s", doc.id, old, block.id)
            seen.add(block.id)
        self._ensure_trailing(doc)

    def _commit(self, doc: Document) -> None:
        self._ensure_trailing(doc)
        doc.touch()
        self.workspace.persist()

    def _record(self, kind: str, description: str, undo: Operation, redo: Operation) -> None:
        self.session.history.push_action(kind, description, undo, redo)

    def _valid_fields(self, block_fields: dict[str, Any]) -> dict[str, Any]:
        """Drop unknown fields and clamp indent to 0..max_indent."""
        unknown = set(block_fields) - MUTABLE_FIELDS
        if unknown:
            logger.warning("ignoring unknown block fields %s", sorted(unknown))
        valid = {k: v for k, v in block_fields.items() if k in MUTABLE_FIELDS}
        indent = valid.get("indent")
        if indent is not None:
            clamped = _clamp(int(indent), 0, self.max_indent)
            if clamped != indent:
                logger.warning("indent %s clamped to %d", indent, clamped)
            valid["indent"] = clamped
        return valid

    def _title_sync(self, doc: Document) -> bool:
        return doc.meta.get_bool(TITLE_SYNC, self.title_sync_default)

    # ------------------------------------------------------------------
    # Replay

    def apply_operation(self, operation: Operation) -> None:
        """Apply an operation descriptor to the current state of its document."""
        doc = self.workspace.get(operation.document_id)
        if doc is None:
            logger.warning("skipping %s on missing document %s", operation.kind, operation.document_id)
            return
        self._apply(doc, operation.kind, operation.payload)
        self._commit(doc)

    def _apply(self, doc: Document, kind: str, payload: dict[str, Any]) -> None:
        if kind == "set_fields":
            self._apply_changes(doc, payload["changes"])
        elif kind == "insert_blocks":
            for entry in payload["blocks"]:
                data = entry["block"]
                if doc.find(data["id"]) is not None:
                    continue
                index = _clamp(entry["index"], 0, len(doc.blocks))
                doc.blocks.insert(index, Block.from_dict(data))
        elif kind == "remove_blocks":
            ids = set(payload["ids"])
            doc.blocks = [b for b in doc.blocks if b.id not in ids]
        elif kind == "reorder_blocks":
            order = payload["order"]
            by_id = {b.id: b for b in doc.blocks}
            listed = [by_id[i] for i in order if i in by_id]
            wanted = set(order)
            doc.blocks = listed + [b for b in doc.blocks if b.id not in wanted]
            self._apply_changes(doc, payload.get("changes", {}))
        elif kind == "set_title":
            self._set_title(doc, payload["title"])
        elif kind == "batch":
            for sub in payload["operations"]:
                self._apply(doc, sub["kind"], sub["payload"])
        else:
            logger.warning("unknown operation kind %s", kind)

    def _apply_changes(self, doc: Document, changes: dict[BlockId, dict[str, Any]]) -> None:
        for block_id, block_changes in changes.items():
            block = doc.find(block_id)
            if block is None:
                continue
            before = block.content
            _assign(block, block_changes)
            if block.content != before:
                self._sync_title(doc, block)

    # ------------------------------------------------------------------
    # Documents

    def create_document(
        self,
        title: str = DEFAULT_TITLE,
        parent_id: DocumentId | None = None,
        blocks: Sequence[Block] = (),
    ) -> Document:
        if parent_id is not None and parent_id not in self.workspace:
            logger.warning("parent %s not found; creating %r at the root", parent_id, title)
            parent_id = None
        doc = Document(id=self._new_document_id(), title=title, parent_id=parent_id)
        doc.blocks = [b.copy() for b in blocks]
        self._repair(doc)
        self.workspace.add(doc)
        self.workspace.persist()
        logger.info("created document %s (%r)", doc.id, title)
        return doc

    def rename_document(self, document_id: DocumentId, title: str) -> Document | None:
        """Set the title, rewrite links to it, and mirror it into the first heading."""
        doc = self._doc(document_id)
        if doc is None:
            return None
        if self._title_sync(doc):
            heading = doc.first_heading()
            if heading is not None:
                heading.content = title
        self._set_title(doc, title)
        self._commit(doc)
        return doc

    def _set_title(self, doc: Document, title: str) -> None:
        if title == doc.title:
            return
        doc.title = title
        self.references.on_rename(doc.id, title)
        for listener in self.listeners:
            listener.on_title_changed(doc.id, title)

    def _sync_title(self, doc: Document, block: Block) -> None:
        if block.type not in HEADING_TYPES or not self._title_sync(doc):
            return
        if doc.first_heading() is not block:
            return
        self._set_title(doc, to_display(block.content).text)

    def set_title_sync(self, document_id: DocumentId, enabled: bool) -> Document | None:
        doc = self._doc(document_id)
        if doc is None:
            return None
        doc.meta[TITLE_SYNC] = enabled
        heading = doc.first_heading()
        if enabled and heading is not None:
            self._set_title(doc, to_display(heading.content).text)
        self._commit(doc)
        return doc

    def delete_document(self, document_id: DocumentId) -> list[DocumentId]:
        """Delete a document and its subtree.

        Links into the subtree stay in place and become broken; callers that
        want to warn first can ask references.find_referencing().
        """
        if document_id not in self.workspace:
            logger.warning("unknown document %s", document_id)
            return []
        ids = self.references.on_delete(document_id)
        for id in ids:
            self.workspace.remove(id)
        self.workspace.persist()
        self.workspace.persist_state(self.session.broken_links.to_state())
        for id in ids:
            for listener in self.listeners:
                listener.on_document_deleted(id)
        return ids

    def move_document(self, document_id: DocumentId, parent_id: DocumentId | None) -> bool:
        """Re-parent a document; refuses moves that would create a cycle."""
        doc = self._doc(document_id)
        if doc is None or parent_id == document_id:
            return False
        if parent_id is not None:
            if parent_id not in self.workspace or self.workspace.is_descendant(document_id, parent_id):
                return False
        doc.parent_id = parent_id
        doc.touch()
        self.workspace.persist()
        return True

    # ------------------------------------------------------------------
    # Blocks

    def insert(
        self,
        document_id: DocumentId,
        block_type: BlockType | str = BlockType.TEXT,
        anchor: BlockId | None = None,
        position: str = "after",
        index: int | None = None,
        **block_fields: Any,
    ) -> Block | None:
        """Insert a new block after/before anchor, at index, or at the end."""
        doc = self._doc(document_id)
        if doc is None:
            return None
        block = Block(id=self._new_block_id(doc), type=BlockType(block_type))
        if block.type in CHECKABLE_TYPES:
            block.checked = False
        _assign(block, self._valid_fields(block_fields))

        if index is not None:
            at = _clamp(index, 0, len(doc.blocks))
        elif anchor is not None and doc.index_of(anchor) >= 0:
            at = doc.index_of(anchor) + (0 if position == "before" else 1)
        else:
            if anchor is not None:
                logger.warning("anchor %s not found in %s; appending", anchor, doc.id)
            at = len(doc.blocks)

        old_title = doc.title
        doc.blocks.insert(at, block)
        if block.content:
            self._sync_title(doc, block)
        undo = Operation("remove_blocks", doc.id, {"ids": [block.id]})
        redo = Operation("insert_blocks", doc.id, {"blocks": [{"index": at, "block": block.to_dict()}]})
        if doc.title != old_title:
            # A new first heading renamed the document
            undo = _batch(doc.id, undo, Operation("set_title", doc.id, {"title": old_title}))
            redo = _batch(doc.id, redo, Operation("set_title", doc.id, {"title": doc.title}))
        self._record("insert", "Insert block", undo=undo, redo=redo)
        self._commit(doc)
        logger.debug("inserted %s %s at %d in %s", block.type.value, block.id, at, doc.id)
        return block

    def update(self, document_id: DocumentId, block_id: BlockId, **block_fields: Any) -> Block | None:
        """Merge fields into a block.

        Content changes on the first heading keep the document title in
        step when title sync is on.
        """
        doc = self._doc(document_id)
        if doc is None:
            return None
        block = self._block(doc, block_id)
        if block is None:
            return None
        self._set_fields(doc, {block_id: self._valid_fields(block_fields)})
        return block

    def _set_fields(
        self,
        doc: Document,
        changes: dict[BlockId, dict[str, Any]],
        kind: str = "update",
        description: str | None = None,
    ) -> bool:
        """Apply per-block field changes as one history action."""
        old: dict[BlockId, dict[str, Any]] = {}
        new: dict[BlockId, dict[str, Any]] = {}
        for block_id, block_changes in changes.items():
            block = doc.find(block_id)
            if block is None:
                continue
            wanted = {k: _plain(v) for k, v in block_changes.items()}
            if "type" in wanted:
                wanted["type"] = BlockType(wanted["type"]).value
            current = _values(block, wanted)
            diff = {k: v for k, v in wanted.items() if current[k] != v}
            if diff:
                old[block_id] = {k: current[k] for k in diff}
                new[block_id] = diff
        if not new:
            return False

        self._apply_changes(doc, new)
        logged_new = {bid: {k: v for k, v in ch.items() if k not in UI_FIELDS} for bid, ch in new.items()}
        logged_new = {bid: ch for bid, ch in logged_new.items() if ch}
        if logged_new:
            logged_old = {bid: {k: old[bid][k] for k in ch} for bid, ch in logged_new.items()}
            if description is None:
                touched = {k for ch in logged_new.values() for k in ch}
                description = "Edit block" if "content" in touched else "Change block"
            self._record(
                kind,
                description,
                undo=Operation("set_fields", doc.id, {"changes": logged_old}),
                redo=Operation("set_fields", doc.id, {"changes": logged_new}),
            )
        self._commit(doc)
        return True

    def delete(self, document_id: DocumentId, block_id: BlockId) -> Block | None:
        doc = self._doc(document_id)
        if doc is None:
            return None
        index = doc.index_of(block_id)
        if index < 0:
            logger.warning("unknown block %s in document %s", block_id, doc.id)
            return None
        block = doc.blocks.pop(index)
        self._record(
            "delete",
            "Delete block",
            undo=Operation("insert_blocks", doc.id, {"blocks": [{"index": index, "block": block.to_dict()}]}),
            redo=Operation("remove_blocks", doc.id, {"ids": [block.id]}),
        )
        self._commit(doc)
        logger.debug("deleted block %s from %s", block_id, doc.id)
        return block

    def _record_reorder(self, doc: Document, before: list[BlockId], cleared: dict[BlockId, int], description: str) -> None:
        self._ensure_trailing(doc)
        after = [b.id for b in doc.blocks]
        self._record(
            "move",
            description,
            undo=Operation(
                "reorder_blocks",
                doc.id,
                {"order": before, "changes": {bid: {"list_number": n} for bid, n in cleared.items()}},
            ),
            redo=Operation(
                "reorder_blocks",
                doc.id,
                {"order": after, "changes": {bid: {"list_number": None} for bid in cleared}},
            ),
        )

    def _drop_overrides(self, blocks: Iterable[Block]) -> dict[BlockId, int]:
        cleared = {}
        for block in blocks:
            if block.list_number is not None:
                cleared[block.id] = block.list_number
                block.list_number = None
        return cleared

    def move(self, document_id: DocumentId, from_index: int, to_index: int, count: int = 1) -> bool:
        """Move count blocks starting at from_index to just before the block
        originally at to_index (to_index == len appends).

        Forward moves land at to_index - count once the span is lifted out.
        Out-of-range indexes are clamped.
        """
        doc = self._doc(document_id)
        if doc is None or not doc.blocks or count < 1:
            return False
        n = len(doc.blocks)
        from_index = _clamp(from_index, 0, n - 1)
        count = min(count, n - from_index)
        to_index = _clamp(to_index, 0, n)
        if from_index <= to_index <= from_index + count:
            return False

        before = [b.id for b in doc.blocks]
        moved = doc.blocks[from_index:from_index + count]
        del doc.blocks[from_index:from_index + count]
        target = to_index - count if to_index > from_index else to_index
        doc.blocks[target:target] = moved
        cleared = self._drop_overrides(moved)

        self._record_reorder(doc, before, cleared, "Move block" if count == 1 else f"Move {count} blocks")
        self._commit(doc)
        return True

    def move_by_ids(self, document_id: DocumentId, ids: Sequence[BlockId], target_index: int) -> bool:
        """Move a multi-selection so it lands before the block at target_index.

        The selection keeps document order. If the block at target_index is
        itself selected, the next unselected block after it is the anchor;
        with none left the selection goes to the end.
        """
        doc = self._doc(document_id)
        if doc is None:
            return False
        selected = set(ids) & {b.id for b in doc.blocks}
        if not selected:
            return False

        target_index = _clamp(target_index, 0, len(doc.blocks))
        anchor = next((b.id for b in doc.blocks[target_index:] if b.id not in selected), None)
        moved = [b for b in doc.blocks if b.id in selected]
        remaining = [b for b in doc.blocks if b.id not in selected]
        if anchor is not None:
            at = next(i for i, b in enumerate(remaining) if b.id == anchor)
        else:
            at = len(remaining)

        reordered = remaining[:at] + moved + remaining[at:]
        if [b.id for b in reordered] == [b.id for b in doc.blocks]:
            return False

        before = [b.id for b in doc.blocks]
        doc.blocks = reordered
        cleared = self._drop_overrides(moved)
        self._record_reorder(doc, before, cleared, f"Move {len(moved)} block(s)")
        self._commit(doc)
        return True

    def convert_type(
        self,
        document_id: DocumentId,
        ids: BlockId | Sequence[BlockId],
        new_type: BlockType | str,
    ) -> list[BlockId]:
        """Convert one or many blocks; returns the ids actually converted."""
        doc = self._doc(document_id)
        if doc is None:
            return []
        if isinstance(ids, str):
            ids = [ids]
        new_type = BlockType(new_type)
        changes: dict[BlockId, dict[str, Any]] = {}
        for block_id in ids:
            block = doc.find(block_id)
            if block is None or block.type == new_type:
                continue
            changes[block_id] = {
                "type": new_type.value,
                "checked": False if new_type in CHECKABLE_TYPES else None,
            }
        if not changes:
            return []
        if len(changes) == 1:
            description = f"Convert to {new_type.value}"
        else:
            description = f"Convert {len(changes)} blocks to {new_type.value}"
        self._set_fields(doc, changes, kind="convert", description=description)
        return list(changes)

    def group_detection(self, document_id: DocumentId) -> list[BlockGroup]:
        doc = self._doc(document_id)
        return detect_groups(doc.blocks) if doc is not None else []

    def list_numbers(self, document_id: DocumentId) -> list[str | None]:
        doc = self._doc(document_id)
        return list_numbers(doc.blocks) if doc is not None else []

    # ------------------------------------------------------------------
    # Editing helpers

    def split(self, document_id: DocumentId, block_id: BlockId, offset: int | None = None) -> Block | None:
        """Enter key: returns the block that should take focus.

        An empty list, heading or callout block is outdented or turned into
        text instead of split. Otherwise the display text is cut at offset
        (default: end) and the tail moves into a new block.
        """
        doc = self._doc(document_id)
        if doc is None:
            return None
        block = self._block(doc, block_id)
        if block is None:
            return None

        if block.type in ENTER_RESETS_TYPES and not block.content.strip():
            if block.type in LIST_TYPES and (block.indent or 0) > 0:
                return self.outdent(document_id, block_id)
            self.convert_type(document_id, block_id, BlockType.TEXT)
            return block

        index = doc.index_of(block_id)
        new = Block(id=self._new_block_id(doc))
        old_content = block.content
        head = old_content
        if block.type in MERGEABLE_TYPES:
            shown = to_display(old_content)
            cut = len(shown.text) if offset is None else _clamp(offset, 0, len(shown.text))
            head_links, tail_links = split_links(shown.links, cut)
            head = to_storage(shown.text[:cut], head_links)
            new.content = to_storage(shown.text[cut:], tail_links)
            new.type = BlockType.TEXT if block.type in HEADING_TYPES else block.type
            if new.type in CHECKABLE_TYPES:
                new.checked = False
            if new.type in LIST_TYPES and block.indent:
                new.indent = block.indent

        doc.blocks.insert(index + 1, new)
        undo_ops = [Operation("remove_blocks", doc.id, {"ids": [new.id]})]
        redo_ops = []
        if head != old_content:
            block.content = head
            self._sync_title(doc, block)
            undo_ops.append(Operation("set_fields", doc.id, {"changes": {block.id: {"content": old_content}}}))
            redo_ops.append(Operation("set_fields", doc.id, {"changes": {block.id: {"content": head}}}))
        redo_ops.append(
            Operation("insert_blocks", doc.id, {"blocks": [{"index": index + 1, "block": new.to_dict()}]})
        )
        self._record("split", "Split block", undo=_batch(doc.id, *undo_ops), redo=_batch(doc.id, *redo_ops))
        self._commit(doc)
        return new

    def merge_with_previous(self, document_id: DocumentId, block_id: BlockId) -> Block | None:
        """Backspace at the start of a block: append it to the previous one."""
        doc = self._doc(document_id)
        if doc is None:
            return None
        index = doc.index_of(block_id)
        if index <= 0:
            return None
        block, prev = doc.blocks[index], doc.blocks[index - 1]
        if block.type not in MERGEABLE_TYPES or prev.type not in MERGEABLE_TYPES:
            return None

        old_content = prev.content
        merged = prev.content + block.content
        snapshot = block.to_dict()
        del doc.blocks[index]
        prev.content = merged
        self._sync_title(doc, prev)
        self._record(
            "merge",
            "Merge blocks",
            undo=_batch(
                doc.id,
                Operation("set_fields", doc.id, {"changes": {prev.id: {"content": old_content}}}),
                Operation("insert_blocks", doc.id, {"blocks": [{"index": index, "block": snapshot}]}),
            ),
            redo=_batch(
                doc.id,
                Operation("set_fields", doc.id, {"changes": {prev.id: {"content": merged}}}),
                Operation("remove_blocks", doc.id, {"ids": [block.id]}),
            ),
        )
        self._commit(doc)
        return prev

    def indent(self, document_id: DocumentId, block_id: BlockId) -> Block | None:
        doc = self._doc(document_id)
        block = self._block(doc, block_id) if doc is not None else None
        if block is None or block.type not in LIST_TYPES:
            return None
        level = block.indent or 0
        if level < self.max_indent:
            self._set_fields(doc, {block_id: {"indent": level + 1}}, kind="indent", description="Indent")
        return block

    def outdent(self, document_id: DocumentId, block_id: BlockId) -> Block | None:
        doc = self._doc(document_id)
        block = self._block(doc, block_id) if doc is not None else None
        if block is None or block.type not in LIST_TYPES:
            return None
        level = block.indent or 0
        if level > 0:
            self._set_fields(doc, {block_id: {"indent": level - 1}}, kind="indent", description="Outdent")
        return block

    def set_list_number(self, document_id: DocumentId, block_id: BlockId, value: int | None) -> bool:
        """Set or clear a manual ordinal.

        Setting it on the first block of a numbered run makes it the start
        of the whole run, so overrides further down are cleared.
        """
        doc = self._doc(document_id)
        if doc is None:
            return False
        index = doc.index_of(block_id)
        if index < 0:
            return False
        changes: dict[BlockId, dict[str, Any]] = {block_id: {"list_number": value}}
        group = group_of(doc.blocks, index)
        if value is not None and group is not None and group.family == "numbered" and group.blocks[0].id == block_id:
            for other in group.blocks[1:]:
                if other.list_number is not None:
                    changes[other.id] = {"list_number": None}
        return self._set_fields(doc, changes, kind="numbering", description="Set list number")

    def reset_list_numbers(self, document_id: DocumentId, ids: Sequence[BlockId] | None = None) -> bool:
        """Drop manual ordinals so the run numbers itself again."""
        doc = self._doc(document_id)
        if doc is None:
            return False
        targets = doc.blocks if ids is None else [b for b in doc.blocks if b.id in set(ids)]
        changes = {b.id: {"list_number": None} for b in targets if b.list_number is not None}
        return self._set_fields(doc, changes, kind="numbering", description="Reset numbering")

    def toggle_collapse(self, document_id: DocumentId, block_id: BlockId) -> bool | None:
        """Flip the collapse flag of a heading. Not undoable."""
        doc = self._doc(document_id)
        block = self._block(doc, block_id) if doc is not None else None
        if block is None or block.type not in HEADING_TYPES:
            return None
        block.collapsed = not block.collapsed
        self._commit(doc)
        return block.collapsed

    def visible_blocks(self, document_id: DocumentId) -> list[Block]:
        """Blocks not hidden by a collapsed heading.

        A collapsed heading hides everything after it up to the next heading
        of the same or a higher level.
        """
        doc = self._doc(document_id)
        if doc is None:
            return []
        out = []
        hiding: int | None = None
        for block in doc.blocks:
            level = heading_level(block.type)
            if hiding is not None:
                if level is None or level > hiding:
                    continue
                hiding = None
            out.append(block)
            if level is not None and block.collapsed:
                hiding = level
        return out

    def apply_shortcut(self, document_id: DocumentId, block_id: BlockId, content: str) -> Block | None:
        """Store typed text, turning markdown-style prefixes into block types."""
        doc = self._doc(document_id)
        block = self._block(doc, block_id) if doc is not None else None
        if block is None:
            return None
        updates = match_shortcut(content) if block.type == BlockType.TEXT else None
        if updates is None:
            return self.update(document_id, block_id, content=content)
        updates.setdefault("checked", None)
        self._set_fields(doc, {block_id: updates}, kind="convert", description=f"Convert to {updates['type'].value}")
        return block

    def display(self, document_id: DocumentId, block_id: BlockId) -> DisplayText | None:
        doc = self._doc(document_id)
        block = self._block(doc, block_id) if doc is not None else None
        if block is None:
            return None
        return to_display(block.content)

    def edit_display(
        self,
        document_id: DocumentId,
        block_id: BlockId,
        text: str,
        links: list[LinkInfo],
    ) -> Block | None:
        """Store text coming back from the editing surface."""
        return self.update(document_id, block_id, content=to_storage(text, links))

    def relink(
        self,
        document_id: DocumentId,
        block_id: BlockId,
        old_target: DocumentId,
        new_target: DocumentId,
        new_title: str | None = None,
    ) -> Block | None:
        """Point links in a block at another document."""
        doc = self._doc(document_id)
        block = self._block(doc, block_id) if doc is not None else None
        if block is None:
            return None
        if new_title is None:
            target = self.workspace.get(new_target)
            new_title = target.title if target is not None else new_target
        changes: dict[str, Any] = {
            "content": self.references.relink(block.content, old_target, new_target, new_title)
        }
        if block.target_document_id == old_target:
            changes["target_document_id"] = new_target
        self._set_fields(doc, {block_id: changes}, kind="relink", description="Relink")
        return block

    # ------------------------------------------------------------------
    # History

    def undo(self):
        return self.session.history.undo()

    def redo(self):
        return self.session.history.redo()
