"""List variants. Items live in ``content``, one per line."""

import re

from blockmark.blocks.base import BlockVariant, VariantDescriptor
from blockmark.blocks.document import EditContext
from blockmark.blocks.models import Block, KeyEvent, Variant
from blockmark.common.utils.markup import get_attr, has_attr, leading_span, list_items, opening_attrs
from blockmark.common.utils.text import escape, escape_markdown, strip_tags, unescape_markdown

_BULLET_RE = re.compile(r"^[ \t]*[-*+](?:[ \t]+(?P<text>.*))?$")
_NUMBER_RE = re.compile(r"^[ \t]*\d{1,9}[.)](?:[ \t]+(?P<text>.*))?$")
_TASK_RE = re.compile(r"^[-*+]?[ \t]*\[(?P<mark>[xX ]?)\][ \t]*(?P<text>[^\n]*)$")
_TASK_MARKERS = ("task", "sq")


def _items_from_lines(text: str, pattern: re.Pattern[str]) -> list[str] | None:
    lines = [line for line in text.strip("\n").split("\n") if line.strip()]
    if not lines:
        return None
    items: list[str] = []
    for line in lines:
        match = pattern.match(line)
        if match is None:
            return None
        items.append(unescape_markdown((match.group("text") or "").strip()))
    return items


def is_task_markup(markup: str) -> bool:
    """Whether ``markup`` carries the task-item marker."""
    attrs = opening_attrs(markup)
    if (get_attr(attrs, "data-block-type") or "") in _TASK_MARKERS:
        return True
    return "task-list-item" in (get_attr(attrs, "class") or "").split()


class _ListVariant(BlockVariant):
    tag: str

    def item_prefix(self, number: int) -> str:
        raise NotImplementedError

    def serialize_markdown(self, block: Block) -> str:
        return "\n".join(
            f"{self.item_prefix(number)}{escape_markdown(item)}".rstrip()
            for number, item in enumerate(block.items, start=1)
        )

    def serialize_markup(self, block: Block) -> str:
        items = "".join(f"<li>{escape(item)}</li>" for item in block.items)
        return f"<{self.tag}>{items}</{self.tag}>"

    def _from_markup(self, text: str) -> Block | None:
        span = leading_span(text, (self.tag,))
        if span is None or "data-block-type" in span.inner or "task-list-item" in span.inner:
            return None
        return self.create("\n".join(list_items(span)), markup=span.markup)


class UnorderedList(_ListVariant):
    tag = "ul"
    descriptor = VariantDescriptor(
        variant=Variant.UNORDERED_LIST,
        triggers=("* ", "- "),
        priority=40,
        is_list=True,
    )

    def item_prefix(self, number: int) -> str:
        return "- "

    def _from_markdown(self, text: str) -> Block | None:
        if any(_TASK_RE.match(line.strip()) for line in text.split("\n")):
            return None
        items = _items_from_lines(text, _BULLET_RE)
        if items is None:
            return None
        return self.create("\n".join(items))


class OrderedList(_ListVariant):
    tag = "ol"
    descriptor = VariantDescriptor(
        variant=Variant.ORDERED_LIST,
        triggers=("1 ", "1."),
        priority=50,
        is_list=True,
    )

    def item_prefix(self, number: int) -> str:
        return f"{number}. "

    def _from_markdown(self, text: str) -> Block | None:
        items = _items_from_lines(text, _NUMBER_RE)
        if items is None:
            return None
        return self.create("\n".join(items))


class TaskList(BlockVariant):
    """A single checklist item."""

    descriptor = VariantDescriptor(
        variant=Variant.TASK,
        triggers=("- [ ]", "- [x]", "- [X]", "- []", "[]", "[x]", "[X]", "[ ]"),
        priority=30,
        is_list=True,
    )

    def on_trigger(self, block: Block, trigger: str) -> None:
        block.checked = "x" in trigger.lower()

    def toggle(self, block: Block) -> bool:
        block.checked = not block.checked
        block.markup = self.serialize_markup(block)
        return block.checked

    def serialize_markdown(self, block: Block) -> str:
        mark = "x" if block.checked else " "
        return f"- [{mark}] {escape_markdown(block.content)}".rstrip()

    def serialize_markup(self, block: Block) -> str:
        checked = " checked" if block.checked else ""
        return (
            f'<li class="task-list-item" data-block-type="task">'
            f'<input type="checkbox"{checked}> {escape(block.content)}</li>'
        )

    def _from_markdown(self, text: str) -> Block | None:
        match = _TASK_RE.fullmatch(text.strip())
        if match is None or not text.strip().startswith(("-", "*", "+", "[")):
            return None
        checked = match.group("mark").lower() == "x"
        return self.create(unescape_markdown(match.group("text").strip()), checked=checked)

    def _from_markup(self, text: str) -> Block | None:
        span = leading_span(text, ("li",))
        if span is None or not is_task_markup(span.markup):
            return None
        checkbox = re.search(r"<input\b([^>]*)>", span.inner, re.IGNORECASE)
        checked = checkbox is not None and has_attr(checkbox.group(1), "checked")
        return self.create(strip_tags(span.inner).strip(), checked=checked, markup=span.markup)

    def handle_key_press(self, event: KeyEvent, context: EditContext) -> bool:
        if event.key == " " and event.ctrl:
            self.toggle(context.block)
            return True
        return False
