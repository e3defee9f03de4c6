"""Randomized operation sequences must keep every document well formed."""

import random

import pytest

from folio.adapters.idgen import HexId
from folio.adapters.memory_storage import MemoryStorage
from folio.core.model import BlockType
from folio.core.store import BlockStore
from folio.core.workspace import Workspace
from folio.format.tokens import iter_tokens

TYPES = list(BlockType)
WORDS = ["", "alpha", "beta gamma", "[[{other}|Other]]", "x [[{other}:Legacy]] y", "# head", "- item"]


def check(doc):
    assert doc.blocks, "document has no blocks"
    last = doc.blocks[-1]
    assert last.type == BlockType.TEXT and last.content == ""
    ids = [b.id for b in doc.blocks]
    assert len(ids) == len(set(ids))
    for block in doc.blocks:
        tokens = list(iter_tokens(block.content))
        assert all(a.end <= b.start for a, b in zip(tokens, tokens[1:]))


def random_step(rng, store, doc, other):
    blocks = doc.blocks
    pick = rng.choice(blocks).id
    content = rng.choice(WORDS).format(other=other.id)
    action = rng.randrange(13)
    if action == 0:
        store.insert(doc.id, rng.choice(TYPES), anchor=pick, position=rng.choice(["after", "before"]), content=content)
    elif action == 1:
        store.insert(doc.id, rng.choice(TYPES), index=rng.randint(-2, len(blocks) + 2), content=content)
    elif action == 2:
        store.update(doc.id, pick, content=content)
    elif action == 3:
        store.delete(doc.id, pick)
    elif action == 4:
        store.move(doc.id, rng.randint(-1, len(blocks)), rng.randint(-1, len(blocks) + 1), rng.randint(1, 3))
    elif action == 5:
        ids = rng.sample([b.id for b in blocks], k=min(len(blocks), rng.randint(1, 3)))
        store.move_by_ids(doc.id, ids, rng.randint(0, len(blocks)))
    elif action == 6:
        store.convert_type(doc.id, pick, rng.choice(TYPES))
    elif action == 7:
        store.split(doc.id, pick, rng.randint(0, 12))
    elif action == 8:
        store.merge_with_previous(doc.id, pick)
    elif action == 9:
        rng.choice([store.indent, store.outdent])(doc.id, pick)
    elif action == 10:
        store.apply_shortcut(doc.id, pick, rng.choice(["## T", "- x", "3. y", "---", "plain"]))
    elif action == 11:
        store.undo()
    else:
        store.redo()


@pytest.mark.parametrize("seed", range(100))
def test_trailing_block_invariant_holds(seed):
    """Test the document ends with exactly one fresh empty text block after every step."""
    rng = random.Random(seed)
    store = BlockStore(Workspace(MemoryStorage()), HexId())
    doc = store.create_document("Random")
    other = store.create_document("Other")
    for _ in range(40):
        random_step(rng, store, doc, other)
        check(doc)
    if rng.random() < 0.5:
        store.rename_document(other.id, "Renamed")
        check(doc)
