"""Block models: the variant tag, variant payloads and the block itself."""

import time
from collections.abc import Iterator
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class Variant(Enum):
    PARAGRAPH = "paragraph"
    H1 = "h1"
    H2 = "h2"
    H3 = "h3"
    H4 = "h4"
    H5 = "h5"
    H6 = "h6"
    UNORDERED_LIST = "ul"
    ORDERED_LIST = "ol"
    TASK = "task"
    QUOTE = "quote"
    CODE = "code"
    TABLE = "table"
    IMAGE = "image"
    DELIMITER = "delimiter"

    @classmethod
    def heading(cls, level: int) -> "Variant":
        if not 1 <= level <= 6:
            raise ValueError(f"Invalid heading level: {level}")
        return cls(f"h{level}")

    @property
    def heading_level(self) -> int:
        """1-6 for headings, 0 otherwise."""
        if self.value.startswith("h") and self.value[1:].isdigit():
            return int(self.value[1:])
        return 0

    @property
    def is_heading(self) -> bool:
        return self.heading_level > 0

    @property
    def is_list(self) -> bool:
        return self in (Variant.UNORDERED_LIST, Variant.ORDERED_LIST, Variant.TASK)


class CodePayload(BaseModel):
    kind: Literal["code"] = "code"
    language: str = ""  # as written after the fence, e.g. "js"


class TablePayload(BaseModel):
    kind: Literal["table"] = "table"
    headers: list[str] = Field(default_factory=list)
    rows: list[list[str]] = Field(default_factory=list)

    @property
    def width(self) -> int:
        return max([len(self.headers), *(len(row) for row in self.rows)], default=0)


class ImagePayload(BaseModel):
    kind: Literal["image"] = "image"
    src: str = ""  # URL, path or data URI
    alt: str = ""
    dimensions: tuple[int, int] = (0, 0)  # 0 if unknown, not None


Payload = Annotated[CodePayload | TablePayload | ImagePayload, Field(discriminator="kind")]


class Block(BaseModel):
    variant: Variant = Variant.PARAGRAPH
    content: str = ""  # plain-text representation, meaning depends on the variant
    markup: str = ""  # rendered markup cache, never authoritative
    children: list["Block"] | None = None
    checked: bool = False  # task only
    last_modified: float = Field(default_factory=time.time)
    payload: Payload | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name == "content":
            super().__setattr__("last_modified", time.time())

    @property
    def items(self) -> list[str]:
        """Content split into lines; list items for list variants."""
        return self.content.split("\n")

    def walk(self) -> Iterator["Block"]:
        """Depth-first iteration over this block and its descendants.

        Raises ``ValueError`` when a block is reachable from itself.
        """
        path: set[int] = set()

        def visit(block: "Block") -> Iterator["Block"]:
            if id(block) in path:
                raise ValueError("Block tree contains a cycle")
            path.add(id(block))
            yield block
            for child in block.children or []:
                yield from visit(child)
            path.discard(id(block))

        yield from visit(self)

    def contains(self, other: "Block") -> bool:
        return any(block is other for block in self.walk())

    def add_child(self, child: "Block") -> None:
        if child.contains(self):
            raise ValueError("A block cannot contain itself")
        if self.children is None:
            self.children = []
        self.children.append(child)


class KeyEvent(BaseModel):
    """A keyboard event as translated by the editing surface."""

    key: str  # "Enter", "Backspace", "Delete", "Tab" or the typed character
    shift: bool = False
    ctrl: bool = False
    alt: bool = False
    meta: bool = False

    model_config = {"frozen": True}

    @property
    def is_character(self) -> bool:
        return len(self.key) == 1 and not (self.ctrl or self.meta or self.alt)
