"""Inline link tokens and their display form."""

from .links import DisplayText, extract_links, make_token, to_display, to_storage, update_links_after_edit
from .tokens import Token, iter_tokens, rewrite_tokens

__all__ = [
    "DisplayText",
    "Token",
    "extract_links",
    "iter_tokens",
    "make_token",
    "rewrite_tokens",
    "to_display",
    "to_storage",
    "update_links_after_edit",
]
