"""Cross-document link integrity.

Nothing is cached: every query scans block content across the workspace,
which is cheap at the size of a personal workspace. Rewrites go through
the token scanner directly, not through the display codec.
"""

import logging
from dataclasses import dataclass

from ..format.tokens import iter_tokens, references, rewrite_tokens
from .model import BlockId, Document, DocumentId, Range
from .session import BrokenLinkSet
from .workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrokenReference:
    document_id: DocumentId
    block_id: BlockId
    target_id: DocumentId
    title: str
    range: Range
    deleted: bool  # True when the target is a known-deleted document


class ReferenceIndex:
    def __init__(self, workspace: Workspace, broken_links: BrokenLinkSet):
        self.workspace = workspace
        self.broken_links = broken_links

    def on_rename(self, document_id: DocumentId, new_title: str) -> list[tuple[DocumentId, BlockId]]:
        """Rewrite the title of every token that targets document_id.

        The renamed document itself is skipped. Returns the touched
        (document id, block id) pairs.
        """
        touched = []
        for doc in self.workspace.documents():
            if doc.id == document_id:
                continue
            changed = False
            for block in doc.blocks:
                if not block.content:
                    continue
                updated = rewrite_tokens(block.content, document_id, title=new_title)
                if updated != block.content:
                    block.content = updated
                    touched.append((doc.id, block.id))
                    changed = True
            if changed:
                doc.touch()
        if touched:
            logger.info("renamed %s: rewrote %d link(s)", document_id, len(touched))
        return touched

    def on_delete(self, document_id: DocumentId) -> list[DocumentId]:
        """Mark document_id and its whole subtree as broken link targets.

        The version counter moves once per call however large the subtree.
        """
        ids = self.workspace.descendants(document_id)
        self.broken_links.add_all(ids)
        logger.info("deleted %s: %d document(s) now broken targets", document_id, len(ids))
        return ids

    def find_referencing(self, document_id: DocumentId) -> list[Document]:
        return [
            doc
            for doc in self.workspace.documents()
            if doc.id != document_id
            and any(block.content and references(block.content, document_id) for block in doc.blocks)
        ]

    def relink(self, content: str, old_target: DocumentId, new_target: DocumentId, new_title: str) -> str:
        return rewrite_tokens(content, old_target, title=new_title, new_target_id=new_target)

    def is_broken(self, document_id: DocumentId) -> bool:
        return document_id in self.broken_links

    def broken_references(self, document_id: DocumentId | None = None) -> list[BrokenReference]:
        """Every token whose target is deleted or was never there."""
        out = []
        for doc in self.workspace.documents():
            if document_id is not None and doc.id != document_id:
                continue
            for block in doc.blocks:
                for token in iter_tokens(block.content or ""):
                    deleted = token.target_id in self.broken_links
                    if deleted or token.target_id not in self.workspace:
                        out.append(
                            BrokenReference(
                                document_id=doc.id,
                                block_id=block.id,
                                target_id=token.target_id,
                                title=token.title,
                                range=Range(token.start, token.end),
                                deleted=deleted,
                            )
                        )
        return out
