"""Tests for moving blocks inside a document."""

import pytest

from folio.adapters.idgen import HexId
from folio.adapters.memory_storage import MemoryStorage
from folio.core.model import Block, BlockType, Document
from folio.core.store import BlockStore
from folio.core.workspace import Workspace


@pytest.fixture
def store():
    doc = Document(id="d", title="Letters", blocks=[Block(id=c, content=c) for c in "ABCDE"])
    return BlockStore(Workspace(MemoryStorage([doc])), HexId())


def order(store, n=5):
    """Ids of the first n blocks; the trailing block is left out."""
    return "".join(b.id for b in store.get_document("d").blocks[:n])


def test_forward_move_lands_before_original_target(store):
    """Test move(1, 4, count=2) on ABCDE gives ADBCE."""
    assert store.move("d", 1, 4, count=2)
    assert order(store) == "ADBCE"


def test_backward_move(store):
    assert store.move("d", 3, 0)
    assert order(store) == "DABCE"


def test_single_forward_move(store):
    assert store.move("d", 0, 2)
    assert order(store) == "BACDE"


def test_move_past_end_appends(store):
    """Test to_index == len appends after the trailing block, which is then renewed."""
    doc = store.get_document("d")
    trailing = doc.blocks[-1].id
    assert store.move("d", 0, len(doc.blocks))
    ids = [b.id for b in doc.blocks]
    assert ids[:6] == ["B", "C", "D", "E", trailing, "A"]
    assert doc.blocks[-1].is_trailing_placeholder


def test_indexes_are_clamped(store):
    assert store.move("d", -3, 2)
    assert order(store) == "BACDE"
    assert store.move("d", 99, 0)
    assert store.get_document("d").blocks[0].content == ""


def test_moves_inside_own_span_are_noops(store):
    assert not store.move("d", 1, 1)
    assert not store.move("d", 1, 2)
    assert not store.move("d", 1, 3, count=2)
    assert order(store) == "ABCDE"
    assert not store.history.can_undo


def test_move_drops_numbering_override(store):
    doc = store.get_document("d")
    store.convert_type("d", ["B", "C"], BlockType.NUMBERED_LIST)
    store.set_list_number("d", "B", 7)
    store.move("d", 1, 4)
    assert doc.find("B").list_number is None

    store.undo()
    assert order(store) == "ABCDE"
    assert doc.find("B").list_number == 7


def test_move_by_ids_keeps_document_order(store):
    assert store.move_by_ids("d", ["D", "B"], 0)
    assert order(store) == "BDACE"


def test_move_by_ids_anchor_inside_selection(store):
    """Test the next unselected block becomes the anchor."""
    assert store.move_by_ids("d", ["B", "D"], 3)
    assert order(store) == "ACBDE"


def test_move_by_ids_to_end(store):
    doc = store.get_document("d")
    assert store.move_by_ids("d", ["A"], len(doc.blocks))
    assert [b.id for b in doc.blocks][4:6] == [doc.blocks[4].id, "A"]
    assert order(store, 4) == "BCDE"
    assert doc.blocks[-1].is_trailing_placeholder


def test_move_by_ids_ignores_unknown_ids(store):
    assert not store.move_by_ids("d", ["nope"], 0)
    assert not store.move_by_ids("d", ["A"], 0)


def test_move_undo_redo(store):
    store.move("d", 1, 4, count=2)
    store.undo()
    assert order(store) == "ABCDE"
    store.redo()
    assert order(store) == "ADBCE"
