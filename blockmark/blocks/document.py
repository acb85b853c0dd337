"""The document: an ordered, never-empty sequence of blocks."""

from collections.abc import Iterator

from pydantic import BaseModel, Field, model_validator

from blockmark.blocks.models import Block, Variant
from blockmark.common.utils.logger import get_logger

logger = get_logger(__name__)


def default_block() -> Block:
    return Block(variant=Variant.PARAGRAPH)


class ReentrancyGuard:
    """Marks the span of a conversion or block creation.

    While active, content may be transiently empty and the document
    repair pass must leave it alone.
    """

    def __init__(self) -> None:
        self._depth = 0

    @property
    def active(self) -> bool:
        return self._depth > 0

    def __enter__(self) -> "ReentrancyGuard":
        self._depth += 1
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._depth -= 1


class Document(BaseModel):
    """Blocks in reading order. Exposes a list-like interface."""

    blocks: list[Block] = Field(default_factory=list)

    @model_validator(mode="after")
    def never_empty(self) -> "Document":
        if not self.blocks:
            self.blocks.append(default_block())
        return self

    def __getitem__(self, index: int) -> Block:
        return self.blocks[index]

    def __iter__(self) -> Iterator[Block]:  # pyright: ignore[reportIncompatibleMethodOverride]
        return iter(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)

    def index_of(self, block: Block) -> int:
        for index, candidate in enumerate(self.blocks):
            if candidate is block:
                return index
        raise ValueError("Block is not part of this document")

    def insert(self, index: int, block: Block) -> Block:
        self.blocks.insert(index, block)
        return block

    def append(self, block: Block) -> Block:
        self.blocks.append(block)
        return block

    def remove(self, index: int) -> Block:
        """Remove and return a block; the last one is replaced by a default block."""
        removed = self.blocks.pop(index)
        if not self.blocks:
            logger.debug("Last block removed, synthesizing a default block.")
            self.blocks.append(default_block())
        return removed

    def clear(self) -> None:
        self.blocks[:] = [default_block()]


def repair(document: Document, guard: ReentrancyGuard | None = None) -> bool:
    """Ensure the document holds at least one block.

    Skipped while ``guard`` is active. Returns whether anything changed.
    """
    if guard is not None and guard.active:
        return False
    if document.blocks:
        return False
    logger.debug("Document is empty, inserting a default block.")
    document.blocks.append(default_block())
    return True


class EditContext(BaseModel):
    """Where an event happened: the document, the focused block and the caret."""

    document: Document
    index: int = 0
    caret: int | None = None  # offset into content; None = end of content
    cell: tuple[int, int] | None = None  # table cell (row, column), row -1 = header

    @property
    def block(self) -> Block:
        return self.document[self.index]

    @property
    def offset(self) -> int:
        length = len(self.block.content)
        if self.caret is None:
            return length
        return max(0, min(self.caret, length))

    @property
    def at_end(self) -> bool:
        return self.offset == len(self.block.content)
