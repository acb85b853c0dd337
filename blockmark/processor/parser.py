"""Markdown to blocks and back, through an intermediate markup form."""

import re
from collections.abc import Callable, Iterable

from blockmark.blocks.base import BlockVariant
from blockmark.blocks.factory import BlockFactory
from blockmark.blocks.lists import is_task_markup
from blockmark.blocks.models import Block, Variant
from blockmark.blocks.registry import VariantRegistry
from blockmark.common.models import ConverterOptions, MarkupSpan
from blockmark.common.utils.logger import get_logger
from blockmark.common.utils.markup import child_spans, iter_spans, segment
from blockmark.common.utils.text import escape, split_lines
from blockmark.processor.converters import MarkdownConverter

logger = get_logger(__name__)

_FENCE_OPEN_RE = re.compile(r"^( {0,3})(`{3,}|~{3,})(.*)$")
_TASK_LINE_RE = re.compile(r"^- \[([xX ])\](?: (.*))?$")

_CODE_REGION_RE = re.compile(r"(<pre\b[\s\S]*?</pre>|<code\b[\s\S]*?</code>)", re.IGNORECASE)
_STRIKE_TAG_RE = re.compile(r"<(/?)s>")
_STRIKE_MD_RE = re.compile(r"~~(.+?)~~")
_QUOTE_RE = re.compile(r"<blockquote>\s*<p>((?:(?!</?p>)[\s\S])*)</p>\s*</blockquote>")
_LONE_CODE_RE = re.compile(r"<p>\s*(<code>(?:(?!</?code>)[\s\S])*</code>)\s*</p>")
_LONE_IMAGE_RE = re.compile(r"<p>\s*(<img\b[^>]*>)\s*</p>")
_TASK_PARAGRAPH_RE = re.compile(r"<p>\s*((?:<task-item\b[^>]*>[\s\S]*?</task-item>\s*)+)</p>")
_TASK_ITEM_RE = re.compile(r"<task-item\s+data-checked=\"(true|false)\">([\s\S]*?)</task-item>\s*")
_HEADING_ID_RE = re.compile(r"<(h[1-6])\s+id=\"[^\"]*\"([^>]*)>")

_BLOCK_NAMES = r"h[1-6]|p|div|del|ul|ol|li|blockquote|pre|code|table"
_ADJACENT_RE = re.compile(rf"(</(?:{_BLOCK_NAMES})>|<(?:hr|img)\b[^>]*>)[ \t]*(?=<(?:{_BLOCK_NAMES}|hr|img)\b)")

# Keeps two adjacent lists of the same kind from merging into one.
LIST_SEPARATOR = "<!-- -->"


def _closing_fence(fence: str) -> re.Pattern[str]:
    return re.compile(rf"^ {{0,3}}{re.escape(fence[0])}{{{len(fence)},}}[ \t]*$")


def _opening_fence(line: str) -> re.Match[str] | None:
    match = _FENCE_OPEN_RE.match(line)
    if match is None or (match.group(2)[0] == "`" and "`" in match.group(3)):
        return None
    return match


def neutralize_open_fences(markdown: str) -> str:
    """Escape code fences that are never closed so they read as plain text."""
    lines = markdown.split("\n")
    i = 0
    while i < len(lines):
        match = _opening_fence(lines[i])
        if match is None:
            i += 1
            continue
        closing = _closing_fence(match.group(2))
        end = next((j for j in range(i + 1, len(lines)) if closing.match(lines[j])), None)
        if end is None:
            escaped = "".join("\\" + char for char in match.group(2))
            lines[i] = match.group(1) + escaped + match.group(3)
            i += 1
        else:
            i = end + 1
    return "\n".join(lines)


def rewrite_task_items(markdown: str) -> str:
    """``- [x] text`` lines become explicit ``<task-item>`` elements."""
    out: list[str] = []
    closing: re.Pattern[str] | None = None
    for line in markdown.split("\n"):
        if closing is not None:
            if closing.match(line):
                closing = None
            out.append(line)
            continue
        fence = _opening_fence(line)
        if fence is not None:
            closing = _closing_fence(fence.group(2))
            out.append(line)
            continue
        task = _TASK_LINE_RE.match(line)
        if task is None:
            out.append(line)
            continue
        checked = "true" if task.group(1).lower() == "x" else "false"
        out.extend(["", f'<task-item data-checked="{checked}">{task.group(2) or ""}</task-item>', ""])
    return "\n".join(out)


def _outside_code(markup: str, fn: Callable[[str], str]) -> str:
    parts = _CODE_REGION_RE.split(markup)
    return "".join(part if i % 2 else fn(part) for i, part in enumerate(parts))


def _normalize_strikethrough(markup: str) -> str:
    markup = _STRIKE_TAG_RE.sub(r"<\1del>", markup)
    return _STRIKE_MD_RE.sub(r"<del>\1</del>", markup)


def _task_item(match: re.Match[str]) -> str:
    checked = " checked" if match.group(1) == "true" else ""
    return (
        f'<li class="task-list-item" data-block-type="task">'
        f'<input type="checkbox"{checked}> {match.group(2).strip()}</li>\n'
    )


def postprocess(markup: str) -> str:
    """Normalize converter output so it segments into one span per block."""
    markup = _outside_code(markup, _normalize_strikethrough)
    markup = _QUOTE_RE.sub(r"<blockquote>\1</blockquote>", markup)
    markup = _LONE_CODE_RE.sub(r"\1", markup)
    markup = _LONE_IMAGE_RE.sub(r"\1", markup)
    markup = _TASK_PARAGRAPH_RE.sub(r"\1", markup)
    markup = _TASK_ITEM_RE.sub(_task_item, markup)
    markup = _HEADING_ID_RE.sub(r"<\1\2>", markup)
    return _ADJACENT_RE.sub("\\1\n", markup)


def _indent(text: str, width: int) -> str:
    pad = " " * width
    return "\n".join(pad + line if line else line for line in text.split("\n"))


class Parser:
    def __init__(
        self,
        registry: VariantRegistry,
        factory: BlockFactory | None = None,
        converter: MarkdownConverter | None = None,
        options: ConverterOptions | None = None,
    ) -> None:
        self.registry = registry
        self.factory = factory or BlockFactory(registry)
        self.converter = converter or MarkdownConverter()
        self.options = options or ConverterOptions()

    # markdown -> blocks

    def to_intermediate(self, markdown: str) -> str:
        """Markdown to markup, with the pre-processing the converter needs."""
        markdown = "\n".join(split_lines(markdown))
        prepared = rewrite_task_items(neutralize_open_fences(markdown))
        try:
            markup = self.converter.convert_to_markup(prepared, self.options)
        except Exception as e:
            logger.warning(f"Markdown converter failed, keeping text as paragraphs: {e}")
            chunks = [chunk.strip() for chunk in re.split(r"\n\s*\n", markdown) if chunk.strip()]
            markup = "\n".join(f"<p>{escape(chunk)}</p>" for chunk in chunks)
        return postprocess(markup)

    def parse(self, markdown: str) -> list[Block]:
        return self.parse_markup(self.to_intermediate(markdown))

    def parse_markup(self, markup: str) -> list[Block]:
        blocks: list[Block] = []
        for span in segment(postprocess(markup)):
            block = self._build(span)
            if block is not None:
                blocks.append(block)
        logger.debug(f"Parsed {len(blocks)} blocks.")
        return blocks

    def parse_markdown_block(self, text: str) -> Block:
        """One markdown snippet through the variant recognizers."""
        return self.factory.from_markdown(text)

    def _build(self, span: MarkupSpan) -> Block | None:
        task = self.registry.get(Variant.TASK)
        block = None
        if task is not None and span.tag == "li" and is_task_markup(span.markup):
            block = task.parse_markup(span.markup)
        if block is None:
            block = self.factory.from_markup(span.markup)
        children = self._children(span)
        if children:
            block.children = children
        return block

    def _children(self, span: MarkupSpan) -> list[Block]:
        if span.tag in ("ul", "ol"):
            items = iter_spans(span.inner, tags=("li",), void_tags=())
            nested = [child for item in items for child in child_spans(item.inner)]
        elif span.tag == "blockquote":
            nested = segment(span.inner)
            if len(nested) < 2:
                return []
        else:
            return []
        return [block for block in (self._build(child) for child in nested) if block is not None]

    # blocks -> markdown / markup

    def _handler(self, block: Block) -> BlockVariant:
        return self.registry.get(block.variant) or self.registry.default

    def serialize_block_markdown(self, block: Block) -> str:
        handler = self._handler(block)
        text = handler.serialize_markdown(block)
        if not block.children or not handler.descriptor.is_list:
            return text
        item_prefix = getattr(handler, "item_prefix", None)
        width = len(item_prefix(len(block.items))) if item_prefix else 2
        nested = "\n".join(_indent(self.serialize_block_markdown(child), width) for child in block.children)
        return f"{text}\n{nested}"

    def serialize_block(self, block: Block) -> str:
        """Markup of a block and its children."""
        handler = self._handler(block)
        markup = handler.serialize_markup(block)
        if not block.children or block.variant is Variant.QUOTE:
            return markup
        inner = "".join(self.serialize_block(child) for child in block.children)
        cut = markup.rfind("</li>")
        if handler.descriptor.is_list and cut != -1:
            return markup[:cut] + inner + markup[cut:]
        return markup + inner

    def to_markdown(self, blocks: Iterable[Block]) -> str:
        parts: list[str] = []
        previous: Variant | None = None
        for block in blocks:
            text = self.serialize_block_markdown(block)
            if not text:
                continue
            if previous is block.variant and block.variant in (Variant.UNORDERED_LIST, Variant.ORDERED_LIST):
                parts.append(LIST_SEPARATOR)
            parts.append(text)
            previous = block.variant
        return "\n\n".join(parts) + ("\n" if parts else "")

    def to_markup(self, blocks: Iterable[Block]) -> str:
        return "\n".join(self.serialize_block(block) for block in blocks)
