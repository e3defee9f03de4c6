"""Tests for derived list ordinals and list grouping."""

from folio.core.model import Block, BlockType
from folio.core.numbering import detect_groups, group_of, list_number, list_numbers

NUM = BlockType.NUMBERED_LIST


def make(*specs):
    """specs: (type, indent, override) tuples."""
    return [
        Block(id=f"b{i}", type=t, indent=indent, list_number=override)
        for i, (t, indent, override) in enumerate(specs)
    ]


def test_sequential_numbering():
    blocks = make((NUM, 0, None), (NUM, 0, None), (NUM, 0, None))
    assert list_numbers(blocks) == ["1", "2", "3"]


def test_override_continues_run():
    """Test that siblings count on from the nearest override."""
    blocks = make((NUM, 0, None), (NUM, 0, 5), (NUM, 0, None), (NUM, 0, None))
    assert list_numbers(blocks) == ["1", "5", "6", "7"]


def test_nested_numbering_uses_dotted_prefix():
    blocks = make((NUM, 0, None), (NUM, 1, None), (NUM, 1, None), (NUM, 0, None))
    assert list_numbers(blocks) == ["1", "1.1", "1.2", "2"]


def test_nested_override_keeps_parent_prefix():
    """Test an override on a nested item replaces only its own component."""
    blocks = make((NUM, 0, None), (NUM, 0, None), (NUM, 1, 5), (NUM, 1, None))
    assert list_numbers(blocks) == ["1", "2", "2.5", "2.6"]


def test_non_list_block_restarts_numbering():
    blocks = make((NUM, 0, None), (BlockType.TEXT, 0, None), (NUM, 0, None))
    assert list_numbers(blocks) == ["1", None, "1"]


def test_bullet_sibling_interrupts_run():
    """Test a non-numbered list sibling at the same indent restarts at 1."""
    blocks = make((NUM, 0, None), (BlockType.BULLET_LIST, 0, None), (NUM, 0, None))
    assert list_numbers(blocks) == ["1", None, "1"]


def test_deeper_bullets_do_not_interrupt():
    blocks = make((NUM, 0, None), (BlockType.BULLET_LIST, 1, None), (NUM, 0, None))
    assert list_numbers(blocks) == ["1", None, "2"]


def test_numbered_under_bullet_has_no_prefix():
    blocks = make((BlockType.BULLET_LIST, 0, None), (NUM, 1, None))
    assert list_number(blocks, 1) == "1"


def test_checkbox_numbered_shares_sequence():
    blocks = make((NUM, 0, None), (BlockType.CHECKBOX_NUMBERED_LIST, 0, None))
    assert list_numbers(blocks) == ["1", "2"]


def test_out_of_range_index():
    assert list_number([], 0) is None


def test_detect_groups():
    """Test partition into maximal same-family runs."""
    blocks = make(
        (BlockType.BULLET_LIST, 0, None),
        (BlockType.BULLET_LIST, 1, None),
        (NUM, 0, None),
        (BlockType.CHECKBOX_NUMBERED_LIST, 0, None),
        (BlockType.TEXT, 0, None),
        (BlockType.TEXT, 0, None),
        (BlockType.CHECKBOX, 0, None),
    )
    groups = detect_groups(blocks)
    assert [(g.family, g.start, len(g.blocks)) for g in groups] == [
        ("bullet", 0, 2),
        ("numbered", 2, 2),
        (None, 4, 1),
        (None, 5, 1),
        ("checkbox", 6, 1),
    ]
    assert groups[1].is_list
    assert not groups[2].is_list
    assert group_of(blocks, 3).ids == ["b2", "b3"]
