"""Tokenizer for inline document links.

Wire grammar::

    [[<id>|<title>]]     current form
    [[<id>:<title>]]     legacy form

<id> is a run of ASCII letters, digits and "-"; <title> is a non-empty run
of anything except "]". Text that does not complete a token is literal.
"""

from collections.abc import Iterator
from dataclasses import dataclass

SEPARATORS = ("|", ":")


@dataclass(frozen=True)
class Token:
    """A well-formed link token found in storage text."""

    target_id: str
    title: str
    separator: str
    start: int  # offset of the opening "[["
    end: int  # offset just past the closing "]]"

    @property
    def title_start(self) -> int:
        return self.start + 2 + len(self.target_id) + 1


def _is_id_char(ch: str) -> bool:
    return ch == "-" or ("0" <= ch <= "9") or ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def _match_at(text: str, i: int) -> Token | None:
    """Try to read a token whose "[[" starts at i."""
    n = len(text)
    j = i + 2

    # Target id
    id_start = j
    while j < n and _is_id_char(text[j]):
        j += 1
    if j == id_start or j >= n or text[j] not in SEPARATORS:
        return None
    target_id = text[id_start:j]
    separator = text[j]
    j += 1

    # Title runs up to the first "]"
    title_start = j
    while j < n and text[j] != "]":
        j += 1
    if j == title_start or text[j:j + 2] != "]]":
        return None

    return Token(
        target_id=target_id,
        title=text[title_start:j],
        separator=separator,
        start=i,
        end=j + 2,
    )


def iter_tokens(text: str) -> Iterator[Token]:
    """Yield tokens left to right; ranges never overlap."""
    i = 0
    n = len(text)
    while i < n - 1:
        if text[i] == "[" and text[i + 1] == "[":
            token = _match_at(text, i)
            if token is not None:
                yield token
                i = token.end
                continue
        i += 1


def token_title(title: str, fallback: str) -> str:
    """Coerce a title into something the grammar can carry."""
    title = title.replace("]", "")
    return title or fallback


def format_token(target_id: str, title: str, separator: str = "|") -> str:
    return f"[[{target_id}{separator}{token_title(title, target_id)}]]"


def rewrite_tokens(text: str, target_id: str, *, title: str, new_target_id: str | None = None) -> str:
    """Rewrite every token pointing at target_id.

    The title is replaced, the target id optionally swapped, the separator
    and all other tokens are left untouched.
    """
    result = []
    last = 0
    for token in iter_tokens(text):
        if token.target_id != target_id:
            continue
        result.append(text[last:token.start])
        result.append(format_token(new_target_id or target_id, title, token.separator))
        last = token.end
    if last == 0:
        return text
    result.append(text[last:])
    return "".join(result)


def references(text: str, target_id: str) -> bool:
    return any(token.target_id == target_id for token in iter_tokens(text))
