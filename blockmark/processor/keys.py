"""Keystroke classification.

Each key event yields at most one action. Rules are tried in order and the
first one that applies wins:

- Enter: fence detection, then the variant's own Enter handling, then the
  list rules, then a plain split at the caret.
- Backspace at the start of a block: remove it when empty, merge it into
  the previous block otherwise.
- Delete on an empty block: remove it.
- Anything else is offered to the variant first; typed characters are then
  buffered and checked against the registered triggers.

A recognizer or transformation that raises is logged and treated as no match.
"""

import re
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from typing import TypeVar

from blockmark.blocks.base import BlockVariant
from blockmark.blocks.code import Code
from blockmark.blocks.document import EditContext
from blockmark.blocks.factory import BlockFactory
from blockmark.blocks.models import Block, KeyEvent, Variant
from blockmark.blocks.registry import VariantRegistry
from blockmark.common.utils.config import get_config
from blockmark.common.utils.logger import get_logger
from blockmark.common.utils.text import normalize_spaces
from blockmark.processor.conversion import ConversionEngine
from blockmark.processor.models import ActionKind, KeyAction, MachineState

logger = get_logger(__name__)

T = TypeVar("T")


class KeyBuffer:
    """The most recent typed characters, oldest dropped first."""

    def __init__(self, size: int) -> None:
        self._keys: deque[str] = deque(maxlen=max(size, 1))

    @property
    def size(self) -> int:
        return self._keys.maxlen or 0

    @property
    def text(self) -> str:
        return "".join(self._keys)

    def push(self, key: str) -> None:
        self._keys.append(key)

    def pop(self) -> str | None:
        return self._keys.pop() if self._keys else None

    def clear(self) -> None:
        self._keys.clear()

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def trailing_run(self, chars: Iterable[str]) -> tuple[str, int]:
        """The character ending the buffer and how often it repeats, if it is one of ``chars``."""
        if not self._keys or self._keys[-1] not in chars:
            return "", 0
        char = self._keys[-1]
        run = 0
        for key in reversed(self._keys):
            if key != char:
                break
            run += 1
        return char, run


def _fence_pattern(chars: Iterable[str], min_length: int) -> re.Pattern[str]:
    runs = "|".join(f"{re.escape(char)}{{{min_length},}}" for char in chars)
    return re.compile(rf"(?P<fence>{runs})[ \t]*(?P<lang>[\w+#.-]*)")


class KeyStateMachine:
    def __init__(
        self,
        registry: VariantRegistry,
        engine: ConversionEngine,
        factory: BlockFactory | None = None,
        buffer_size: int | None = None,
    ) -> None:
        settings = get_config()
        self.registry = registry
        self.engine = engine
        self.factory = factory or BlockFactory(registry, engine.guard)
        size = buffer_size or settings.key_buffer_size or max(registry.longest_trigger, settings.fence_min_length)
        self.buffer = KeyBuffer(size)
        self.state = MachineState.IDLE
        self._focus: int | None = None

    def reset(self) -> None:
        self.buffer.clear()
        self.state = MachineState.IDLE
        self._focus = None

    def _handler(self, block: Block) -> BlockVariant:
        return self.registry.get(block.variant) or self.registry.default

    def _guarded(self, step: Callable[[], T], fallback: T, what: str) -> T:
        try:
            return step()
        except Exception as e:
            logger.warning(f"{what} failed, treating as no match: {e}")
            return fallback

    # Entry point

    def classify(self, event: KeyEvent, context: EditContext) -> KeyAction:
        """Decide on, and apply, the action for one key event."""
        if context.index != self._focus:
            self.buffer.clear()
            self.state = MachineState.IDLE
            self._focus = context.index
        if not 0 <= context.index < len(context.document):
            return KeyAction.none(context.index, context.caret)

        action = self._guarded(
            lambda: self._dispatch(event, context),
            KeyAction.none(context.index, context.caret),
            f"Handling {event.key!r}",
        )
        if action.handled:
            self._refresh(context, action)
        if action.index != context.index:
            self.buffer.clear()
            self._focus = action.index
        logger.debug(f"{event.key!r} -> {action.kind.value} (block {action.index}, state {self.state.value})")
        return action

    def _dispatch(self, event: KeyEvent, context: EditContext) -> KeyAction:
        match event.key:
            case "Enter":
                if event.shift:
                    return KeyAction.none(context.index, context.caret)
                try:
                    return self._on_enter(event, context)
                finally:
                    self.buffer.clear()
                    self.state = MachineState.IDLE
            case "Backspace":
                self.buffer.pop()
                return self._on_backspace(context)
            case "Delete":
                return self._on_delete(context)

        handler = self._handler(context.block)
        if self._guarded(lambda: handler.handle_key_press(event, context), False, f"{handler!r} key handler"):
            return KeyAction(kind=ActionKind.VARIANT, index=context.index, caret=context.caret)
        if event.is_character:
            self.buffer.push(event.key)
            return self._on_character(context)
        return KeyAction.none(context.index, context.caret)

    def _refresh(self, context: EditContext, action: KeyAction) -> None:
        document = context.document
        for index in {context.index, action.index}:
            if 0 <= index < len(document):
                block = document[index]
                block.markup = self._guarded(
                    lambda: self._handler(block).serialize_markup(block),
                    block.markup,
                    "Rendering markup",
                )

    # Characters and triggers

    def _on_character(self, context: EditContext) -> KeyAction:
        block = context.block
        if not self._handler(block).descriptor.accepts_triggers:
            self.state = MachineState.IDLE
            return KeyAction.none(context.index, context.caret)

        text = normalize_spaces(block.content)
        match = self._guarded(lambda: self.registry.match_trigger(text), None, "Trigger lookup")
        if match is not None and match[1].variant is not block.variant:
            trigger, target = match
            return self._convert(context, target, seed="", trigger=trigger)

        self.state = MachineState.BUFFERING if self.registry.is_trigger_prefix(text) else MachineState.IDLE
        return KeyAction.none(context.index, context.caret)

    def _convert(self, context: EditContext, target: BlockVariant, seed: str, trigger: str | None) -> KeyAction:
        block = context.block
        self.state = MachineState.CONVERTING
        try:
            changed = self.engine.convert(block, target.variant, seed=seed)
            if changed and trigger is not None:
                target.on_trigger(block, trigger)
        finally:
            self.state = MachineState.IDLE
            self.buffer.clear()
        if not changed:
            return KeyAction.none(context.index, context.caret)
        context.caret = None
        return KeyAction(
            kind=ActionKind.CONVERT,
            index=context.index,
            variant=target.variant,
            trigger=trigger,
        )

    # Enter

    def _detect_fence(self, text: str) -> tuple[str, str] | None:
        """``(seed, language)`` when the block ends in a code fence."""
        settings = get_config()
        text = normalize_spaces(text).strip()
        match = _fence_pattern(settings.fence_chars, settings.fence_min_length).fullmatch(text)
        if match is not None:
            return "", match.group("lang")
        char, run = self.buffer.trailing_run(settings.fence_chars)
        if run >= settings.fence_min_length and text.endswith(char * run):
            return text[:-run].rstrip(), ""
        return None

    def _on_enter(self, event: KeyEvent, context: EditContext) -> KeyAction:
        block = context.block
        handler = self._handler(block)

        code = self.registry.get(Variant.CODE)
        if code is not None and handler.descriptor.accepts_triggers:
            fence = self._guarded(lambda: self._detect_fence(block.content), None, "Fence detection")
            if fence is not None:
                seed, language = fence
                action = self._convert(context, code, seed=seed, trigger=None)
                if action.handled and isinstance(code, Code):
                    code.set_language(block, language)
                if action.handled:
                    return action

        if self._guarded(lambda: handler.handle_enter_key(event, context), False, f"{handler!r} Enter handler"):
            return KeyAction(kind=ActionKind.VARIANT, index=context.index, caret=context.caret)

        if handler.descriptor.is_list:
            action = self._guarded(lambda: self._list_enter(context), None, "List Enter")
            if action is not None:
                return action

        return self._split(context)

    def _insert_after(self, context: EditContext, variant: Variant, content: str = "") -> int:
        index = context.index + 1
        context.document.insert(index, self.factory.create(variant, content))
        return index

    def _list_enter(self, context: EditContext) -> KeyAction | None:
        block = context.block
        if not block.content.strip("\n").strip():
            # an empty list (or task) ends the list where it stands
            self.engine.convert(block, Variant.PARAGRAPH, seed="")
            return KeyAction(kind=ActionKind.EXIT_LIST, index=context.index, caret=0, variant=Variant.PARAGRAPH)

        if block.variant is Variant.TASK:
            offset = context.offset
            tail = block.content[offset:]
            block.content = block.content[:offset]
            index = self._insert_after(context, Variant.TASK, tail)
            return KeyAction(kind=ActionKind.NEW_ITEM, index=index, caret=0)

        if not context.at_end:
            offset = context.offset
            block.content = block.content[:offset] + "\n" + block.content[offset:]
            return KeyAction(kind=ActionKind.NEW_ITEM, index=context.index, caret=offset + 1)
        items = block.items
        if items[-1].strip():
            block.content = block.content + "\n"
            return KeyAction(kind=ActionKind.NEW_ITEM, index=context.index)

        block.content = "\n".join(items[:-1])
        index = self._insert_after(context, Variant.PARAGRAPH)
        return KeyAction(kind=ActionKind.EXIT_LIST, index=index, caret=0)

    def _split(self, context: EditContext) -> KeyAction:
        block = context.block
        tail = ""
        if self._handler(block).descriptor.mergeable:
            offset = context.offset
            tail = block.content[offset:]
            if tail:
                block.content = block.content[:offset]
        index = self._insert_after(context, Variant.PARAGRAPH, tail)
        return KeyAction(kind=ActionKind.SPLIT, index=index, caret=0)

    # Backspace / Delete

    def _on_backspace(self, context: EditContext) -> KeyAction:
        if context.offset != 0 or context.index == 0:
            return KeyAction.none(context.index, context.caret)

        document = context.document
        block = context.block
        previous = document[context.index - 1]
        caret = len(previous.content)

        if not block.content:
            with self.engine.guard:
                document.remove(context.index)
            return KeyAction(kind=ActionKind.REMOVE, index=context.index - 1, caret=caret)

        if self._handler(block).descriptor.mergeable and self._handler(previous).descriptor.mergeable:
            with self.engine.guard:
                previous.content = previous.content + block.content
                document.remove(context.index)
            return KeyAction(kind=ActionKind.MERGE, index=context.index - 1, caret=caret)

        return KeyAction.none(context.index, context.caret)

    def _on_delete(self, context: EditContext) -> KeyAction:
        document = context.document
        if context.block.content or len(document) <= 1:
            return KeyAction.none(context.index, context.caret)
        with self.engine.guard:
            document.remove(context.index)
        if context.index < len(document):
            return KeyAction(kind=ActionKind.REMOVE, index=context.index, caret=0)
        return KeyAction(kind=ActionKind.REMOVE, index=context.index - 1)
