"""Core."""

from collections.abc import Iterable
from functools import cache
from typing import overload

from blockmark.blocks.code import SyntaxHighlighter
from blockmark.blocks.document import Document, EditContext, ReentrancyGuard, repair
from blockmark.blocks.factory import BlockFactory
from blockmark.blocks.lists import TaskList
from blockmark.blocks.models import Block, KeyEvent, Variant
from blockmark.blocks.registry import VariantRegistry, build_registry
from blockmark.blocks.table import Table
from blockmark.common.models import ConverterOptions
from blockmark.common.utils.logger import get_logger
from blockmark.processor.conversion import ConversionEngine
from blockmark.processor.highlighter import PygmentsHighlighter
from blockmark.processor.keys import KeyStateMachine
from blockmark.processor.models import KeyAction
from blockmark.processor.parser import Parser

logger = get_logger(__name__)


class EditorSession:
    """One editing session: a document plus the machinery that edits it.

    Every public operation ends with a single repair pass so the document is
    never left empty.
    """

    def __init__(
        self,
        document: Document | None = None,
        registry: VariantRegistry | None = None,
        highlighter: SyntaxHighlighter | None = None,
        options: ConverterOptions | None = None,
    ) -> None:
        self.registry = registry or build_registry(highlighter or PygmentsHighlighter())
        self.guard = ReentrancyGuard()
        self.factory = BlockFactory(self.registry, self.guard)
        self.parser = Parser(self.registry, self.factory, options=options)
        self.engine = ConversionEngine(self.registry, self.guard)
        self.machine = KeyStateMachine(self.registry, self.engine, self.factory)
        self.document = document if document is not None else Document()

    def _settle(self) -> None:
        repair(self.document, self.guard)

    # Loading and saving

    def load(self, markdown: str) -> Document:
        self.document = Document(blocks=self.parser.parse(markdown))
        self.machine.reset()
        return self.document

    def load_markup(self, markup: str) -> Document:
        self.document = Document(blocks=self.parser.parse_markup(markup))
        self.machine.reset()
        return self.document

    def to_markdown(self) -> str:
        return self.parser.to_markdown(self.document)

    def to_markup(self) -> str:
        return self.parser.to_markup(self.document)

    # Messages from the editing surface

    def context(self, index: int = 0, caret: int | None = None, cell: tuple[int, int] | None = None) -> EditContext:
        return EditContext(document=self.document, index=index, caret=caret, cell=cell)

    def classify_key_event(self, event: KeyEvent | str, context: EditContext | None = None) -> KeyAction:
        if isinstance(event, str):
            event = KeyEvent(key=event)
        context = context or self.context()
        action = self.machine.classify(event, context)
        repair(context.document, self.guard)
        return action

    def convert(self, index: int, target: Variant | str) -> bool:
        changed = self.engine.convert(self.document[index], target)
        self._settle()
        return changed

    def edit_cell(self, index: int, row: int, column: int, text: str) -> bool:
        block = self.document[index]
        table = self.registry.get(Variant.TABLE)
        if block.variant is not Variant.TABLE or not isinstance(table, Table):
            logger.debug(f"Block {index} is not a table, ignoring cell edit.")
            return False
        changed = table.set_cell(block, row, column, text)
        self._settle()
        return changed

    def toggle_task(self, index: int) -> bool:
        """Flip a task's checkbox. Returns the new state."""
        block = self.document[index]
        task = self.registry.get(Variant.TASK)
        if block.variant is not Variant.TASK or not isinstance(task, TaskList):
            return False
        checked = task.toggle(block)
        self._settle()
        return checked

    def insert_block(self, index: int, variant: Variant | str = Variant.PARAGRAPH, content: str = "") -> Block:
        block = self.document.insert(index, self.factory.create(variant, content))
        self._settle()
        return block

    def remove_block(self, index: int) -> Block:
        with self.guard:
            removed = self.document.remove(index)
        self._settle()
        return removed


@cache
def default_registry() -> VariantRegistry:
    return build_registry(PygmentsHighlighter())


@cache
def _default_parser() -> Parser:
    return Parser(default_registry())


def parse(markdown: str) -> list[Block]:
    """Markdown to blocks."""
    return _default_parser().parse(markdown)


def parse_markup(markup: str) -> list[Block]:
    return _default_parser().parse_markup(markup)


def serialize_block(block: Block) -> str:
    """Markup of one block, children included."""
    return _default_parser().serialize_block(block)


@overload
def serialize_markdown(blocks: Block, /) -> str: ...


@overload
def serialize_markdown(blocks: Iterable[Block], /) -> str: ...


def serialize_markdown(blocks: Block | Iterable[Block]) -> str:
    """Markdown for one block or a sequence of blocks.

    Can be called as:
    - serialize_markdown(block)
    - serialize_markdown(document)
    - serialize_markdown([block, block])
    """
    if isinstance(blocks, Block):
        return _default_parser().serialize_block_markdown(blocks)
    return _default_parser().to_markdown(blocks)


def convert(block: Block, target: Variant | str) -> bool:
    """Re-type ``block`` in place. Unknown targets do nothing."""
    return ConversionEngine(default_registry()).convert(block, target)
