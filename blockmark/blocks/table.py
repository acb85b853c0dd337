"""Tables. The payload holds the cells; ``content`` is the markdown table text."""

import re

from blockmark.blocks.base import BlockVariant, VariantDescriptor
from blockmark.blocks.document import EditContext
from blockmark.blocks.models import Block, KeyEvent, TablePayload, Variant
from blockmark.common.utils.config import get_config
from blockmark.common.utils.logger import get_logger
from blockmark.common.utils.markup import iter_spans, leading_span
from blockmark.common.utils.text import escape, strip_tags

logger = get_logger(__name__)

_SEPARATOR_RE = re.compile(r"\|?[ \t]*:?-+:?[ \t]*(?:\|[ \t]*:?-+:?[ \t]*)*\|?")
_PIPE_RE = re.compile(r"(?<!\\)\|")


def split_row(line: str) -> list[str]:
    """Cells of one pipe-delimited row, trimmed, trailing empty cells dropped."""
    line = line.strip()
    if line.startswith("|"):
        line = line[1:]
    if line.endswith("|") and not line.endswith("\\|"):
        line = line[:-1]
    cells = [cell.strip().replace("\\|", "|") for cell in _PIPE_RE.split(line)]
    while cells and not cells[-1]:
        cells.pop()
    return cells


def is_separator(line: str) -> bool:
    return _SEPARATOR_RE.fullmatch(line.strip()) is not None


def parse_table(text: str) -> tuple[list[str], list[list[str]]]:
    """Headers and rows of a markdown table. Fewer than two lines gives an empty table."""
    lines = [line for line in text.split("\n") if line.strip()]
    if len(lines) < 2:
        return [], []
    body = lines[2:] if is_separator(lines[1]) else lines[1:]
    return split_row(lines[0]), [split_row(line) for line in body]


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def _pad(row: list[str], width: int) -> list[str]:
    return row + [""] * (width - len(row))


def table_markdown(headers: list[str], rows: list[list[str]]) -> str:
    """Pipe table: header row, a separator as wide as the header, then the rows."""
    if not headers and not rows:
        return ""
    width = len(headers) or max(len(row) for row in rows)
    lines = [
        "| " + " | ".join(_cell(cell) for cell in _pad(headers, width)) + " |",
        "| " + " | ".join(["---"] * width) + " |",
    ]
    for row in rows:
        lines.append("| " + " | ".join(_cell(cell) for cell in _pad(row, width)) + " |")
    return "\n".join(lines)


def default_table(columns: int | None = None, rows: int | None = None) -> TablePayload:
    settings = get_config()
    columns = columns or settings.table_default_columns
    rows = settings.table_default_rows if rows is None else rows
    return TablePayload(
        headers=[f"Column {i}" for i in range(1, columns + 1)],
        rows=[[""] * columns for _ in range(rows)],
    )


def table_payload(block: Block) -> TablePayload:
    if not isinstance(block.payload, TablePayload):
        headers, rows = parse_table(block.content)
        block.payload = TablePayload(headers=headers, rows=rows)
    return block.payload


class Table(BlockVariant):
    descriptor = VariantDescriptor(
        variant=Variant.TABLE,
        triggers=("| ", "|--", "|:--"),
        priority=80,
        accepts_triggers=False,
        mergeable=False,
    )

    def create(
        self,
        content: str = "",
        headers: list[str] | None = None,
        rows: list[list[str]] | None = None,
        **fields,
    ) -> Block:
        if headers is None and rows is None:
            headers, rows = parse_table(content)
        payload = TablePayload(headers=headers or [], rows=rows or [])
        return super().create(table_markdown(payload.headers, payload.rows), payload=payload, **fields)

    def _sync(self, block: Block) -> None:
        payload = table_payload(block)
        block.content = table_markdown(payload.headers, payload.rows)
        block.markup = self.serialize_markup(block)

    def plain_text(self, block: Block) -> str:
        payload = table_payload(block)
        return "\n".join(" | ".join(cells) for cells in [payload.headers, *payload.rows])

    def apply_transformation(self, block: Block, seed: str) -> None:
        super().apply_transformation(block, "")
        lines = [line for line in seed.split("\n") if line.strip()]
        if not lines:
            block.payload = default_table()
        elif len(lines) >= 2 and is_separator(lines[1]):
            headers, rows = parse_table(seed)
            block.payload = TablePayload(headers=headers, rows=rows)
        else:
            # plain lines become one row each; pipes split cells
            cells = [split_row(line) for line in lines]
            block.payload = TablePayload(headers=cells[0], rows=cells[1:])
        self._sync(block)

    # Editing operations

    def add_row(self, block: Block, index: int | None = None) -> int:
        payload = table_payload(block)
        index = len(payload.rows) if index is None else max(0, min(index, len(payload.rows)))
        payload.rows.insert(index, [""] * max(payload.width, 1))
        self._sync(block)
        return index

    def remove_row(self, block: Block, index: int) -> bool:
        payload = table_payload(block)
        if len(payload.rows) <= 1 or not 0 <= index < len(payload.rows):
            return False
        del payload.rows[index]
        self._sync(block)
        return True

    def add_column(self, block: Block, index: int | None = None, header: str | None = None) -> int:
        payload = table_payload(block)
        width = payload.width
        index = width if index is None else max(0, min(index, width))
        payload.headers = _pad(payload.headers, width)
        payload.headers.insert(index, header if header is not None else f"Column {width + 1}")
        for i, row in enumerate(payload.rows):
            payload.rows[i] = _pad(row, width)
            payload.rows[i].insert(index, "")
        self._sync(block)
        return index

    def remove_column(self, block: Block, index: int) -> bool:
        payload = table_payload(block)
        width = payload.width
        if width <= 1 or not 0 <= index < width:
            return False
        payload.headers = _pad(payload.headers, width)
        del payload.headers[index]
        for i, row in enumerate(payload.rows):
            payload.rows[i] = _pad(row, width)
            del payload.rows[i][index]
        self._sync(block)
        return True

    def set_cell(self, block: Block, row: int, column: int, text: str) -> bool:
        """Write one cell. Row -1 is the header."""
        payload = table_payload(block)
        if column < 0 or not -1 <= row < len(payload.rows):
            logger.debug(f"Cell ({row}, {column}) is outside the table.")
            return False
        cells = payload.headers if row == -1 else payload.rows[row]
        cells.extend([""] * (column + 1 - len(cells)))
        cells[column] = text.strip()
        self._sync(block)
        return True

    # Serialization

    def serialize_markdown(self, block: Block) -> str:
        payload = table_payload(block)
        return table_markdown(payload.headers, payload.rows)

    def serialize_markup(self, block: Block) -> str:
        payload = table_payload(block)
        width = payload.width
        head = "".join(f"<th>{escape(cell)}</th>" for cell in _pad(payload.headers, width))
        body = "".join(
            "<tr>" + "".join(f"<td>{escape(cell)}</td>" for cell in _pad(row, width)) + "</tr>"
            for row in payload.rows
        )
        return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"

    def _from_markdown(self, text: str) -> Block | None:
        lines = [line for line in text.strip().split("\n") if line.strip()]
        if len(lines) < 2 or "|" not in lines[0] or not is_separator(lines[1]):
            return None
        if not all("|" in line for line in lines):
            return None
        return self.create(text.strip())

    def _from_markup(self, text: str) -> Block | None:
        span = leading_span(text, ("table",))
        if span is None:
            return None
        headers: list[str] = []
        rows: list[list[str]] = []
        for index, tr in enumerate(iter_spans(span.inner, tags=("tr",), void_tags=())):
            cells = list(iter_spans(tr.inner, tags=("th", "td"), void_tags=()))
            values = [strip_tags(cell.inner).strip() for cell in cells]
            while values and not values[-1]:
                values.pop()
            if index == 0:
                headers = values
            else:
                rows.append(values)
        return self.create(headers=headers, rows=rows, markup=span.markup)

    # Keys

    def handle_key_press(self, event: KeyEvent, context: EditContext) -> bool:
        """Tab moves to the next cell, Shift+Tab to the previous one, wrapping around."""
        if event.key != "Tab":
            return False
        payload = table_payload(context.block)
        width = max(payload.width, 1)
        total = (len(payload.rows) + 1) * width
        row, column = context.cell or (-1, 0)
        position = (row + 1) * width + column
        position = (position + (-1 if event.shift else 1)) % total
        context.cell = (position // width - 1, position % width)
        return True

    def handle_enter_key(self, event: KeyEvent, context: EditContext) -> bool:
        """Enter adds a row below the current cell."""
        payload = table_payload(context.block)
        row = context.cell[0] if context.cell else len(payload.rows) - 1
        index = self.add_row(context.block, row + 1)
        context.cell = (index, 0)
        return True
