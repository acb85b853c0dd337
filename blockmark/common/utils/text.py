"""Plain-text helpers shared by the variants and the parser."""

import html
import re

NBSP = "\u00a0"

_TAG_RE = re.compile(r"<[^>]+>")
_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)


def normalize_spaces(text: str) -> str:
    """Replace non-breaking spaces with plain ones."""
    return text.replace(NBSP, " ").replace("&nbsp;", " ")


def strip_tags(markup: str) -> str:
    """Drop all tags and decode entities. Line breaks survive as newlines."""
    if not markup:
        return ""
    text = _BREAK_RE.sub("\n", markup)
    text = _TAG_RE.sub("", text)
    return html.unescape(text)


def escape(text: str) -> str:
    return html.escape(text, quote=False)


def escape_attr(text: str) -> str:
    return html.escape(text, quote=True)


def unescape(text: str) -> str:
    return html.unescape(text)


def split_lines(text: str) -> list[str]:
    """Split on any newline flavour."""
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


_MD_INLINE_RE = re.compile(r"([\\`*_\[\]<&~#])")
_MD_LINE_START_RE = re.compile(r"^([ \t]*)([>+=|:-])")
_MD_ORDERED_RE = re.compile(r"^([ \t]*\d+)([.)])")
_MD_ESCAPED_RE = re.compile(r"\\([!-/:-@\[-`{-~])")


def escape_markdown(text: str) -> str:
    """Backslash-escape ``text`` so markdown reads every line back as plain text.

    Inline markers are escaped anywhere. Block markers (quote, list, setext and
    table rows) only at the start of a line, where they would take effect.
    """
    lines = []
    for line in _MD_INLINE_RE.sub(r"\\\1", text).split("\n"):
        line = _MD_LINE_START_RE.sub(r"\1\\\2", line)
        lines.append(_MD_ORDERED_RE.sub(r"\1\\\2", line))
    return "\n".join(lines)


def unescape_markdown(text: str) -> str:
    return _MD_ESCAPED_RE.sub(r"\1", text)
