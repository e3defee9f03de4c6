"""Tests for the link token scanner."""

from folio.format.tokens import format_token, iter_tokens, references, rewrite_tokens, token_title


def test_iter_tokens_both_separators():
    """Test that current and legacy separators are both recognised."""
    text = "see [[abc|Alpha]] and [[x-1:Beta]]"
    tokens = list(iter_tokens(text))
    assert [(t.target_id, t.title, t.separator) for t in tokens] == [
        ("abc", "Alpha", "|"),
        ("x-1", "Beta", ":"),
    ]
    assert text[tokens[0].start:tokens[0].end] == "[[abc|Alpha]]"


def test_malformed_tokens_are_literal():
    """Test that incomplete or invalid tokens are skipped."""
    for text in ["[[abc|]]", "[[|Title]]", "[[ab c|T]]", "[[abc|Title]", "[[abc Title]]", "[["]:
        assert list(iter_tokens(text)) == []


def test_scanner_recovers_after_bad_candidate():
    """Test that a bad candidate does not hide a later token."""
    tokens = list(iter_tokens("[[[abc|T]]"))
    assert len(tokens) == 1
    assert tokens[0].start == 1
    assert tokens[0].target_id == "abc"


def test_ranges_increase_and_do_not_overlap():
    """Test storage ranges of adjacent tokens."""
    tokens = list(iter_tokens("[[a|1]][[b|2]]x[[c|3]]"))
    ends = [t.start for t in tokens[1:]]
    assert all(prev.end <= start for prev, start in zip(tokens, ends))


def test_token_title_sanitises():
    """Test that "]" is stripped and empty titles fall back to the id."""
    assert token_title("a]b", "id1") == "ab"
    assert token_title("]]", "id1") == "id1"
    assert format_token("id1", "") == "[[id1|id1]]"


def test_rewrite_tokens_keeps_separator_and_others():
    """Test rewriting only touches the requested target."""
    text = "[[a|Old]] [[b|Other]] [[a:Old]]"
    out = rewrite_tokens(text, "a", title="New")
    assert out == "[[a|New]] [[b|Other]] [[a:New]]"


def test_rewrite_tokens_swaps_target():
    """Test target replacement used by relinking."""
    out = rewrite_tokens("x [[a|Old]] y", "a", title="Fresh", new_target_id="z")
    assert out == "x [[z|Fresh]] y"


def test_rewrite_tokens_no_match_returns_same_text():
    text = "[[b|Other]]"
    assert rewrite_tokens(text, "a", title="New") is text


def test_references_matches_whole_id():
    """Test that an id prefix is not a reference."""
    assert references("[[abc|T]]", "abc")
    assert not references("[[abcd|T]]", "abc")
