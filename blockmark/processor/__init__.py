"""Parsing, conversion and key handling. Main logic."""

from blockmark.processor.conversion import ConversionEngine
from blockmark.processor.core import EditorSession, convert, parse, parse_markup, serialize_block, serialize_markdown
from blockmark.processor.keys import KeyBuffer, KeyStateMachine
from blockmark.processor.models import ActionKind, KeyAction, MachineState
from blockmark.processor.parser import Parser

__all__ = [
    "ActionKind",
    "ConversionEngine",
    "EditorSession",
    "KeyAction",
    "KeyBuffer",
    "KeyStateMachine",
    "MachineState",
    "Parser",
    "convert",
    "parse",
    "parse_markup",
    "serialize_block",
    "serialize_markdown",
]
