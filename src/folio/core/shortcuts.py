"""Markdown-style prefixes that turn a plain text block into another type."""

import re
from typing import Any

from .model import BlockType

_HEADING_RE = re.compile(r"^(#{1,4})\s")
_BULLET_RE = re.compile(r"^-\s")
_NUMBERED_RE = re.compile(r"^(\d+)\.\s")
_CHECKBOX_RE = re.compile(r"^(-\[(-| )\]\s|\[\[\s)")
_CHECKBOX_DONE_RE = re.compile(r"^(-\[x\]\s|\[\[\[\s)", re.IGNORECASE)
_NUMBERED_CHECKBOX_RE = re.compile(r"^(\d+)\[\[\s")
_NUMBERED_CHECKBOX_DONE_RE = re.compile(r"^(\d+)\[\[\[\s")

DIVIDERS = {"---": "regular", "___": "stop"}


def match_shortcut(content: str) -> dict[str, Any] | None:
    """Return the field updates a typed prefix stands for, or None.

    >>> match_shortcut("## Plan")
    {'type': <BlockType.HEADING2: 'heading2'>, 'content': 'Plan'}
    """
    m = _HEADING_RE.match(content)
    if m:
        level = len(m.group(1))
        return {"type": BlockType(f"heading{level}"), "content": content[m.end():]}

    if _BULLET_RE.match(content):
        return {"type": BlockType.BULLET_LIST, "content": content[2:]}

    m = _NUMBERED_RE.match(content)
    if m:
        return {
            "type": BlockType.NUMBERED_LIST,
            "content": content[m.end():],
            "list_number": int(m.group(1)),
        }

    # Checked forms first: "[[[ " would otherwise match "[[ "
    m = _NUMBERED_CHECKBOX_DONE_RE.match(content)
    if m:
        return {
            "type": BlockType.CHECKBOX_NUMBERED_LIST,
            "content": content[m.end():],
            "checked": True,
            "list_number": int(m.group(1)),
        }

    m = _NUMBERED_CHECKBOX_RE.match(content)
    if m:
        return {
            "type": BlockType.CHECKBOX_NUMBERED_LIST,
            "content": content[m.end():],
            "checked": False,
            "list_number": int(m.group(1)),
        }

    m = _CHECKBOX_DONE_RE.match(content)
    if m:
        return {"type": BlockType.CHECKBOX, "content": content[m.end():], "checked": True}

    m = _CHECKBOX_RE.match(content)
    if m:
        return {"type": BlockType.CHECKBOX, "content": content[m.end():], "checked": False}

    variant = DIVIDERS.get(content.strip())
    if variant:
        return {"type": BlockType.DIVIDER, "content": "", "divider_variant": variant}

    return None
