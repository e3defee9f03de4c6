"""Tests for storage/display conversion of link tokens."""

import pytest

from folio.core.model import LinkInfo, Range
from folio.format.links import (
    extract_links,
    split_links,
    storage_links,
    to_display,
    to_storage,
    update_links_after_edit,
)


def test_extract_links_in_order():
    """Test extraction keeps storage order and ranges."""
    links = extract_links("a [[x|One]] b [[y:Two]]")
    assert [lk.target_id for lk in links] == ["x", "y"]
    assert links[0].storage == Range(2, 11)
    assert links[1].separator == ":"


def test_to_display_replaces_tokens_with_titles():
    """Test display text and display ranges."""
    shown = to_display("Hi [[abc|Bob]], meet [[d:Ann]]!")
    assert shown.text == "Hi Bob, meet Ann!"
    assert [lk.display for lk in shown.links] == [Range(3, 6), Range(13, 16)]
    for lk in shown.links:
        assert shown.text[lk.display.start:lk.display.end] == lk.title


@pytest.mark.parametrize(
    "storage",
    [
        "",
        "plain text",
        "[[a|Start]] of line",
        "end of [[a|line]]",
        "[[a|x]][[b|y]]",
        "legacy [[a-1:Title]] stays legacy",
        "brackets [[ not a link ]] and [[a|ok]]",
    ],
)
def test_round_trip_storage(storage):
    """Test to_storage(to_display(S)) == S for well-formed text."""
    shown = to_display(storage)
    assert to_storage(shown.text, shown.links) == storage


def test_round_trip_display():
    """Test to_display(to_storage(d, L)) == (d, L) absent edits."""
    text = "go to Home now"
    links = [LinkInfo("h1", "Home", storage=Range(0, 0), display=Range(6, 10))]
    shown = to_display(to_storage(text, links))
    assert shown.text == text
    assert [(lk.target_id, lk.title, lk.display) for lk in shown.links] == [("h1", "Home", Range(6, 10))]


def test_to_storage_drops_edited_link():
    """Test that a link whose text was typed over is dropped."""
    shown = to_display("see [[a|Alpha]] here")
    edited = shown.text.replace("Alpha", "Alpxa")
    assert to_storage(edited, shown.links) == "see Alpxa here"


def test_to_storage_drops_overlapping_link():
    """Test the later of two overlapping links is dropped."""
    links = [
        LinkInfo("a", "abcd", Range(0, 0), Range(0, 4)),
        LinkInfo("b", "cd", Range(0, 0), Range(2, 4)),
    ]
    assert to_storage("abcd", links) == "[[a|abcd]]"


def test_storage_links_reports_survivors():
    shown = to_display("[[a|x]] and [[b|y]]")
    kept = storage_links("x and z", shown.links)
    assert [lk.target_id for lk in kept] == ["a"]
    assert kept[0].storage == Range(0, 7)


def test_update_links_after_edit_shifts_following_links():
    """Test links after an insertion are shifted."""
    shown = to_display("ab [[x|Link]] cd")
    new_text = "abXYZ Link cd"
    moved = update_links_after_edit(shown.text, new_text, shown.links)
    assert moved[0].display == Range(6, 10)
    assert to_storage(new_text, moved) == "abXYZ [[x|Link]] cd"


def test_update_links_after_edit_keeps_earlier_links():
    shown = to_display("[[x|Link]] tail")
    moved = update_links_after_edit(shown.text, "Link tail!", shown.links)
    assert moved[0].display == Range(0, 4)


def test_update_links_after_edit_relocates_touched_link():
    """Test a link overlapping the edit is searched near its old place."""
    shown = to_display("aa [[x|Link]] Link bb")
    new_text = "aa Lnk Link bb"
    moved = update_links_after_edit(shown.text, new_text, shown.links)
    assert moved[0].display == Range(7, 11)


def test_update_links_after_edit_drops_destroyed_link():
    shown = to_display("aa [[x|Link]] bb")
    assert update_links_after_edit(shown.text, "aa Lnk bb", shown.links) == []


def test_split_links():
    """Test links before and after a cut; a crossing link is lost."""
    shown = to_display("[[a|one]] two [[b|three]]")
    head, tail = split_links(shown.links, 5)
    assert [lk.target_id for lk in head] == ["a"]
    assert tail[0].display == Range(3, 8)
    head, tail = split_links(shown.links, 1)
    assert head == []
    assert [lk.target_id for lk in tail] == ["b"]
