"""Shared base models for markup handling."""

from typing import TypeAlias

from pydantic import BaseModel

# Character offsets into the markup a span was cut from: (start, end)
Offsets: TypeAlias = tuple[int, int]


class MarkupSpan(BaseModel):
    """A balanced top-level element found while segmenting markup."""

    tag: str
    attrs: str = ""  # raw attribute text of the opening tag
    markup: str  # the whole element, tags included
    inner: str = ""  # markup between the opening and closing tag
    offsets: Offsets = (0, 0)
    void: bool = False  # <hr>, <img>: no closing tag, no inner markup
