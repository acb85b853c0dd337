"""In-place conversion between variants."""

import pytest

from blockmark.blocks import Block, Document, ReentrancyGuard, Variant, VariantRegistry, build_registry
from blockmark.blocks.table import Table
from blockmark.blocks.text import Heading, Paragraph
from blockmark.processor import ConversionEngine
from blockmark.processor.conversion import resolve_variant


@pytest.fixture
def engine(registry):
    return ConversionEngine(registry)


def test_paragraph_to_heading(engine):
    block = Block(content="Hello", markup="<p>Hello</p>")
    assert engine.convert(block, Variant.H1)
    assert block.variant is Variant.H1
    assert block.content == "Hello"
    assert block.markup == "<h1>Hello</h1>"
    assert not engine.convert(block, Variant.H1)


def test_unknown_target_is_a_no_op(engine):
    block = Block(content="x")
    assert not engine.convert(block, "bogus")
    assert block.variant is Variant.PARAGRAPH and block.content == "x"


def test_resolve_variant():
    assert resolve_variant(" H2 ") is Variant.H2
    assert resolve_variant(Variant.CODE) is Variant.CODE
    assert resolve_variant("bogus") is None


def test_target_missing_from_registry():
    engine = ConversionEngine(VariantRegistry([Paragraph()]))
    assert not engine.convert(Block(content="x"), Variant.H1)


def test_table_flattens_and_rebuilds(engine):
    block = Table().create(headers=["a", "b"], rows=[["1", "2"]])
    assert engine.convert(block, Variant.PARAGRAPH)
    assert block.content == "a | b\n1 | 2"
    assert block.payload is None

    assert engine.convert(block, Variant.TABLE)
    assert block.payload.headers == ["a", "b"]
    assert block.payload.rows == [["1", "2"]]


def test_empty_block_to_table_uses_template(engine):
    block = Block()
    assert engine.convert(block, Variant.TABLE)
    assert block.payload.headers == ["Column 1", "Column 2", "Column 3"]
    assert block.payload.rows == [["", "", ""]]
    assert block.markup.startswith("<table><thead>")


def test_list_to_paragraph_keeps_lines(engine):
    block = Block(variant=Variant.ORDERED_LIST, content="one\ntwo")
    assert engine.convert(block, Variant.PARAGRAPH)
    assert block.content == "one\ntwo"
    assert block.markup == "<p>one<br>two</p>"


def test_task_state_is_cleared(engine):
    block = Block(variant=Variant.TASK, content="done", checked=True)
    assert engine.convert(block, Variant.QUOTE)
    assert not block.checked


def test_paragraph_to_code(engine):
    block = Block(content="print(1)")
    assert engine.convert(block, Variant.CODE)
    assert block.payload.language == ""
    assert block.markup == "<pre><code>print(1)\n</code></pre>"


def test_image_from_text(engine):
    block = Block(content="https://example.com/a.png")
    assert engine.convert(block, Variant.IMAGE)
    assert block.payload.src == "https://example.com/a.png"

    caption = Block(content="a caption")
    assert engine.convert(caption, Variant.IMAGE)
    assert caption.payload.src == ""
    assert caption.payload.alt == "a caption"
    assert caption.content == ""


def test_delimiter_drops_text(engine):
    block = Block(content="gone")
    assert engine.convert(block, Variant.DELIMITER)
    assert block.content == ""
    assert block.markup == "<hr>"


class BrokenHeading(Heading):
    def apply_transformation(self, block, seed):
        super().apply_transformation(block, seed)
        raise RuntimeError("half way")


def test_failed_conversion_restores_block():
    guard = ReentrancyGuard()
    engine = ConversionEngine(VariantRegistry([Paragraph(), BrokenHeading(1)]), guard)
    block = Block(content="keep", markup="<p>keep</p>")
    assert not engine.convert(block, Variant.H1)
    assert block.variant is Variant.PARAGRAPH
    assert block.content == "keep"
    assert block.markup == "<p>keep</p>"
    assert not guard.active


class RecordingParagraph(Paragraph):
    def __init__(self, guard):
        self.guard = guard
        self.seen = []

    def apply_transformation(self, block, seed):
        self.seen.append((self.guard.active, block.content))
        super().apply_transformation(block, seed)


def test_guard_is_held_during_conversion():
    guard = ReentrancyGuard()
    recording = RecordingParagraph(guard)
    registry = VariantRegistry([recording, Heading(1)])
    engine = ConversionEngine(registry, guard)
    block = Block(variant=Variant.H1, content="text")
    assert engine.convert(block, Variant.PARAGRAPH)
    # content is cleared before the target variant sees the seed
    assert recording.seen == [(True, "")]
    assert not guard.active
    assert block.content == "text"


def test_conversion_never_changes_block_count():
    registry = build_registry()
    engine = ConversionEngine(registry)
    document = Document(blocks=[Block(content="a"), Block(content="b")])
    for variant in Variant:
        assert engine.convert(document[0], variant) is (variant is not Variant.PARAGRAPH)
    assert len(document) == 2
    assert document[0].variant is Variant.DELIMITER
    assert document[1].content == "b"
