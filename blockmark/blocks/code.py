"""Fenced code blocks."""

import re
from typing import Protocol

from blockmark.blocks.base import BlockVariant, VariantDescriptor
from blockmark.blocks.document import EditContext
from blockmark.blocks.models import Block, CodePayload, KeyEvent, Variant
from blockmark.common.utils.config import get_config
from blockmark.common.utils.logger import get_logger
from blockmark.common.utils.markup import code_language, code_text, leading_span
from blockmark.common.utils.text import escape, escape_attr

logger = get_logger(__name__)

_FENCED_RE = re.compile(
    r"(?P<fence>`{3,}|~{3,})[ \t]*(?P<lang>[^\n`]*)\n(?P<body>[\s\S]*?)\n?(?P=fence)[`~]*[ \t]*",
)


class SyntaxHighlighter(Protocol):
    def highlight(self, code: str, language: str) -> str: ...

    def normalize_language(self, name: str) -> str: ...


def fence_for(content: str) -> str:
    """A backtick fence longer than any backtick run inside ``content``."""
    longest = max((len(run) for run in re.findall(r"`+", content)), default=0)
    return "`" * max(3, longest + 1)


def code_payload(block: Block) -> CodePayload:
    if not isinstance(block.payload, CodePayload):
        block.payload = CodePayload()
    return block.payload


class Code(BlockVariant):
    descriptor = VariantDescriptor(
        variant=Variant.CODE,
        triggers=("```", "~~~"),
        priority=60,
        accepts_triggers=False,
        mergeable=False,
    )

    def __init__(self, highlighter: SyntaxHighlighter | None = None) -> None:
        self.highlighter = highlighter

    def create(self, content: str = "", language: str = "", **fields) -> Block:
        return super().create(content, payload=CodePayload(language=language), **fields)

    def language(self, block: Block) -> str:
        return code_payload(block).language

    def normalized_language(self, block: Block) -> str:
        """Canonical language key, or "" when the highlighter does not know it."""
        if self.highlighter is None:
            return ""
        return self.highlighter.normalize_language(self.language(block))

    def set_language(self, block: Block, language: str) -> None:
        code_payload(block).language = language.strip()
        block.markup = self.serialize_markup(block)

    def apply_transformation(self, block: Block, seed: str) -> None:
        language = block.payload.language if isinstance(block.payload, CodePayload) else ""
        super().apply_transformation(block, seed.removesuffix("\n"))
        block.payload = CodePayload(language=language)

    def serialize_markdown(self, block: Block) -> str:
        fence = fence_for(block.content)
        return f"{fence}{self.language(block)}\n{block.content}\n{fence}"

    def _highlight(self, block: Block) -> str:
        escaped = escape(block.content)
        if self.highlighter is None or not block.content or not get_config().highlight_code:
            return escaped
        try:
            highlighted = self.highlighter.highlight(block.content, self.language(block))
        except Exception as e:
            logger.warning(f"Highlighter failed for {self.language(block)!r}: {e}")
            return escaped
        return highlighted or escaped

    def serialize_markup(self, block: Block) -> str:
        language = self.language(block)
        css_class = f' class="language-{escape_attr(language)}"' if language else ""
        newline = "\n" if block.content else ""
        return f"<pre><code{css_class}>{self._highlight(block)}{newline}</code></pre>"

    def _from_markdown(self, text: str) -> Block | None:
        match = _FENCED_RE.fullmatch(text.strip())
        if match is None:
            return None
        return self.create(match.group("body"), language=match.group("lang").strip())

    def _from_markup(self, text: str) -> Block | None:
        span = leading_span(text, ("pre", "code"))
        if span is None:
            return None
        return self.create(code_text(span.markup), language=code_language(span.markup), markup=span.markup)

    def handle_key_press(self, event: KeyEvent, context: EditContext) -> bool:
        if event.key != "Tab" or event.shift:
            return False
        block, offset = context.block, context.offset
        tab = get_config().code_tab
        block.content = block.content[:offset] + tab + block.content[offset:]
        context.caret = offset + len(tab)
        return True

    def handle_enter_key(self, event: KeyEvent, context: EditContext) -> bool:
        """Insert a newline. Enter on a trailing empty line leaves the block instead."""
        block, offset = context.block, context.offset
        if context.at_end and block.content.endswith("\n"):
            block.content = block.content[:-1]
            return False
        block.content = block.content[:offset] + "\n" + block.content[offset:]
        context.caret = offset + 1
        return True
