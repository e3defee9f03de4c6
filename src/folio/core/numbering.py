"""Ordinals for numbered list blocks and grouping of list runs.

Nothing here is stored: ordinals are derived from the neighbours of a
block every time they are asked for. Only manual overrides
(``Block.list_number``) persist.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from .model import LIST_TYPES, NUMBERED_TYPES, Block, list_family


def _indent(block: Block) -> int:
    return block.indent or 0


def list_number(blocks: Sequence[Block], index: int, _cache: dict[int, str | None] | None = None) -> str | None:
    """Return the ordinal label of blocks[index], e.g. "3" or "2.1".

    Walks backwards over the contiguous list run:
    - deeper predecessors are skipped;
    - numbered siblings at the same indent are counted until one carries an
      override (ordinal = override + count) or the run starts (1 + count);
    - a non-numbered list sibling at the same indent restarts at 1;
    - the first shallower predecessor ends the walk and, when numbered,
      contributes its own ordinal as a dotted prefix.

    Returns None for blocks that are not numbered.
    """
    if index < 0 or index >= len(blocks):
        return None
    if _cache is not None and index in _cache:
        return _cache[index]

    block = blocks[index]
    if block.type not in NUMBERED_TYPES:
        return None

    level = _indent(block)
    steps = 0
    local: int | None = None
    prefix: str | None = None
    counting = True

    for j in range(index - 1, -1, -1):
        pred = blocks[j]
        if pred.type not in LIST_TYPES:
            break
        pred_level = _indent(pred)
        if pred_level > level:
            continue
        if pred_level < level:
            if pred.type in NUMBERED_TYPES:
                prefix = list_number(blocks, j, _cache)
            break
        if not counting:
            continue
        # same indent
        if pred.type not in NUMBERED_TYPES:
            counting = False
            continue
        steps += 1
        if pred.list_number is not None:
            local = pred.list_number + steps
            counting = False

    if local is None:
        local = 1 + steps
    if block.list_number is not None:
        local = block.list_number

    label = f"{prefix}.{local}" if prefix else str(local)
    if _cache is not None:
        _cache[index] = label
    return label


def list_numbers(blocks: Sequence[Block]) -> list[str | None]:
    cache: dict[int, str | None] = {}
    return [list_number(blocks, i, cache) for i in range(len(blocks))]


@dataclass
class BlockGroup:
    """A maximal run of same-family list blocks, or a single other block."""

    family: str | None  # "bullet" | "numbered" | "checkbox" | None
    start: int
    blocks: list[Block]

    @property
    def is_list(self) -> bool:
        return self.family is not None

    @property
    def ids(self) -> list[str]:
        return [b.id for b in self.blocks]


def detect_groups(blocks: Sequence[Block]) -> list[BlockGroup]:
    """Partition blocks for rendering.

    numberedList and checkboxNumberedList share one family, so a mixed run
    of them numbers continuously.
    """
    groups: list[BlockGroup] = []
    for i, block in enumerate(blocks):
        family = list_family(block.type)
        if family is not None and groups and groups[-1].family == family:
            groups[-1].blocks.append(block)
        else:
            groups.append(BlockGroup(family=family, start=i, blocks=[block]))
    return groups


def group_of(blocks: Sequence[Block], index: int) -> BlockGroup | None:
    for group in detect_groups(blocks):
        if group.start <= index < group.start + len(group.blocks):
            return group
    return None
