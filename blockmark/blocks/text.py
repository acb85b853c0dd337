"""Text-like variants: paragraph, headings, quote and the delimiter."""

import re

from blockmark.blocks.base import BlockVariant, VariantDescriptor
from blockmark.blocks.models import Block, Variant
from blockmark.common.utils.markup import leading_span, text_content
from blockmark.common.utils.text import escape, escape_markdown, unescape_markdown

_DELIMITER_RE = re.compile(r"([-*_])(?:[ \t]*\1){2,}")
_QUOTE_LINE_RE = re.compile(r"^>[ \t]?(.*)$")


def inline_markup(text: str) -> str:
    """Escape ``text`` for use inside an element, keeping its line breaks."""
    return escape(text).replace("\n", "<br>")


class Paragraph(BlockVariant):
    """The default variant. Any text that nothing else claims ends up here."""

    descriptor = VariantDescriptor(variant=Variant.PARAGRAPH, priority=100)

    def serialize_markdown(self, block: Block) -> str:
        return escape_markdown(block.content)

    def serialize_markup(self, block: Block) -> str:
        return f"<p>{inline_markup(block.content)}</p>"

    def _from_markdown(self, text: str) -> Block | None:
        if not text.strip():
            return None
        return self.create(unescape_markdown(text.strip()))

    def _from_markup(self, text: str) -> Block | None:
        span = leading_span(text, ("p", "div", "del"))
        if span is None:
            return None
        return self.create(text_content(span), markup=span.markup)


class Heading(BlockVariant):
    def __init__(self, level: int) -> None:
        self.level = level
        self.descriptor = VariantDescriptor(
            variant=Variant.heading(level),
            triggers=("#" * level + " ",),
            priority=10 + level,
        )
        self._pattern = re.compile(rf"#{{{level}}}(?:[ \t]+(?P<text>[^\n]*))?")

    def serialize_markdown(self, block: Block) -> str:
        text = " ".join(block.content.split("\n"))
        return f"{'#' * self.level} {escape_markdown(text)}".rstrip()

    def serialize_markup(self, block: Block) -> str:
        tag = self.variant.value
        return f"<{tag}>{inline_markup(block.content)}</{tag}>"

    def _from_markdown(self, text: str) -> Block | None:
        match = self._pattern.fullmatch(text.strip())
        if match is None:
            return None
        body = (match.group("text") or "").strip()
        # closing hashes are decoration
        body = re.sub(r"[ \t]+#+$", "", body) if body.strip("#") else ""
        return self.create(unescape_markdown(body))

    def _from_markup(self, text: str) -> Block | None:
        span = leading_span(text, (self.variant.value,))
        if span is None:
            return None
        return self.create(text_content(span), markup=span.markup)


class Quote(BlockVariant):
    descriptor = VariantDescriptor(variant=Variant.QUOTE, triggers=("> ",), priority=70)

    def serialize_markdown(self, block: Block) -> str:
        return "\n".join(f"> {escape_markdown(line)}".rstrip() for line in block.content.split("\n"))

    def serialize_markup(self, block: Block) -> str:
        return f"<blockquote>{inline_markup(block.content)}</blockquote>"

    def _from_markdown(self, text: str) -> Block | None:
        lines = [line.strip() for line in text.strip().split("\n")]
        if not lines or not all(_QUOTE_LINE_RE.match(line) for line in lines):
            return None
        body = [_QUOTE_LINE_RE.match(line).group(1).strip() for line in lines]  # type: ignore[union-attr]
        return self.create(unescape_markdown("\n".join(line for line in body if line)))

    def _from_markup(self, text: str) -> Block | None:
        span = leading_span(text, ("blockquote",))
        if span is None:
            return None
        return self.create(text_content(span), markup=span.markup)


class Delimiter(BlockVariant):
    """A horizontal rule. Holds no text."""

    descriptor = VariantDescriptor(
        variant=Variant.DELIMITER,
        triggers=("---", "***", "___"),
        priority=20,
        accepts_triggers=False,
        mergeable=False,
    )

    def plain_text(self, block: Block) -> str:
        return ""

    def apply_transformation(self, block: Block, seed: str) -> None:
        super().apply_transformation(block, "")

    def serialize_markdown(self, block: Block) -> str:
        return "---"

    def serialize_markup(self, block: Block) -> str:
        return "<hr>"

    def _from_markdown(self, text: str) -> Block | None:
        if _DELIMITER_RE.fullmatch(text.strip()) is None:
            return None
        return self.create()

    def _from_markup(self, text: str) -> Block | None:
        span = leading_span(text, (), void_tags=("hr",))
        if span is None:
            return None
        return self.create(markup=span.markup)
