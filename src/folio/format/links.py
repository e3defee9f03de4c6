"""Conversion between the storage and display forms of block content.

Storage form carries link tokens (``[[id|Title]]``); display form is what a
user edits, with every token replaced by its bare title. LinkInfo records
where each link sits in both coordinate systems so the display text can be
wrapped back into tokens after editing.
"""

from dataclasses import dataclass, replace

from ..core.model import LinkInfo, Range
from .tokens import format_token, iter_tokens

# How far around its old position a link title is searched after an edit
RELOCATE_WINDOW = 20


@dataclass(frozen=True)
class DisplayText:
    text: str
    links: list[LinkInfo]


def extract_links(storage: str) -> list[LinkInfo]:
    """List links in storage order. Display ranges are left at zero."""
    return [
        LinkInfo(
            target_id=token.target_id,
            title=token.title,
            storage=Range(token.start, token.end),
            display=Range(0, 0),
            separator=token.separator,
        )
        for token in iter_tokens(storage)
    ]


def to_display(storage: str) -> DisplayText:
    """Replace every token with its title.

    Each link's display position is its storage position minus the
    cumulative shrinkage of the tokens before it.
    """
    parts = []
    links = []
    offset = 0
    last = 0

    for link in extract_links(storage):
        parts.append(storage[last:link.storage.start])
        parts.append(link.title)
        start = link.storage.start - offset
        links.append(replace(link, display=Range(start, start + len(link.title))))
        offset += (link.storage.end - link.storage.start) - len(link.title)
        last = link.storage.end

    parts.append(storage[last:])
    return DisplayText("".join(parts), links)


def to_storage(text: str, links: list[LinkInfo]) -> str:
    """Wrap the display text back into tokens.

    A link survives only while the text at its display range still equals
    its title; links that were typed over or that overlap an earlier link
    are dropped without complaint.
    """
    if not links:
        return text

    parts = []
    last = 0
    for link in sorted(links, key=lambda lk: lk.display.start):
        start, end = link.display.start, link.display.end
        if start < last or end > len(text) or start >= end:
            continue
        if text[start:end] != link.title:
            continue
        parts.append(text[last:start])
        parts.append(format_token(link.target_id, link.title, link.separator))
        last = end

    parts.append(text[last:])
    return "".join(parts)


def storage_links(text: str, links: list[LinkInfo]) -> list[LinkInfo]:
    """Links that to_storage would keep, with storage ranges filled in."""
    return to_display(to_storage(text, links)).links


def update_links_after_edit(old_text: str, new_text: str, links: list[LinkInfo]) -> list[LinkInfo]:
    """Carry link positions across a single contiguous edit.

    Links entirely before the first changed character stay put, links
    entirely after it shift by the length delta. A link the edit touched is
    searched for by title near its old position and dropped if not found.
    """
    if not links:
        return []

    delta = len(new_text) - len(old_text)
    change = 0
    limit = min(len(old_text), len(new_text))
    while change < limit and old_text[change] == new_text[change]:
        change += 1

    updated = []
    for link in links:
        start, end = link.display.start, link.display.end
        if end <= change:
            updated.append(link)
        elif start >= change:
            updated.append(replace(link, display=Range(start + delta, end + delta)))
        else:
            lo = max(0, start - RELOCATE_WINDOW)
            hi = min(len(new_text), end + RELOCATE_WINDOW)
            found = new_text.find(link.title, lo, hi)
            if found != -1:
                updated.append(replace(link, display=Range(found, found + len(link.title))))
    return updated


def split_links(links: list[LinkInfo], offset: int) -> tuple[list[LinkInfo], list[LinkInfo]]:
    """Partition links around a display offset; a link crossing it is lost."""
    head = [lk for lk in links if lk.display.end <= offset]
    tail = [
        replace(lk, display=Range(lk.display.start - offset, lk.display.end - offset))
        for lk in links
        if lk.display.start >= offset
    ]
    return head, tail


def make_token(target_id: str, title: str, separator: str = "|") -> str:
    return format_token(target_id, title, separator)
