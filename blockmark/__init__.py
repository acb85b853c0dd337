"""Main entrypoint. Exposes the public API."""

from blockmark.blocks.document import Document, EditContext
from blockmark.blocks.models import Block, KeyEvent, Variant
from blockmark.processor.core import EditorSession, convert, parse, parse_markup, serialize_block, serialize_markdown
from blockmark.processor.models import ActionKind, KeyAction

__all__ = [
    "ActionKind",
    "Block",
    "Document",
    "EditContext",
    "EditorSession",
    "KeyAction",
    "KeyEvent",
    "Variant",
    "convert",
    "parse",
    "parse_markup",
    "serialize_block",
    "serialize_markdown",
]
