from dataclasses import dataclass
from typing import Protocol

from .core.model import BlockId, Document, Range
from .core.references import ReferenceIndex


@dataclass
class Finding:
    severity: str  # "info" | "warn" | "error"
    message: str
    block_id: BlockId | None = None
    range: Range | None = None


class LintRule(Protocol):
    id: str

    def check(self, document: Document, references: ReferenceIndex) -> list[Finding]:
        pass


class DeadLinksRule:
    id = "dead-links"

    def check(self, document: Document, references: ReferenceIndex) -> list[Finding]:
        out: list[Finding] = []
        for ref in references.broken_references(document.id):
            if ref.deleted:
                msg = f"Link to deleted document {ref.target_id} ({ref.title})"
                out.append(Finding("warn", msg, ref.block_id, ref.range))
            else:
                msg = f"Unknown document id {ref.target_id} ({ref.title})"
                out.append(Finding("error", msg, ref.block_id, ref.range))
        return out


class DuplicateBlockIdsRule:
    id = "duplicate-block-ids"

    def check(self, document: Document, references: ReferenceIndex) -> list[Finding]:
        seen: set[BlockId] = set()
        out: list[Finding] = []
        for block in document.blocks:
            if block.id in seen:
                out.append(Finding("error", f"Duplicate block id {block.id}", block.id))
            seen.add(block.id)
        return out


DEFAULT_RULES: list[LintRule] = [DeadLinksRule(), DuplicateBlockIdsRule()]
