"""Block model, document, registry and factory."""

import pytest

from blockmark.blocks import (
    Block,
    BlockFactory,
    Document,
    ReentrancyGuard,
    Variant,
    VariantRegistry,
    repair,
)
from blockmark.blocks.text import Heading, Paragraph


def test_variant_helpers():
    assert Variant.heading(3) is Variant.H3
    assert Variant.H3.heading_level == 3
    assert Variant.PARAGRAPH.heading_level == 0
    assert Variant.TASK.is_list and not Variant.QUOTE.is_list
    with pytest.raises(ValueError):
        Variant.heading(7)


def test_content_change_updates_last_modified():
    block = Block(content="a")
    block.last_modified = 0.0
    block.content = "b"
    assert block.last_modified > 0.0


def test_children_refuse_cycles():
    parent, child = Block(content="parent"), Block(content="child")
    parent.add_child(child)
    with pytest.raises(ValueError):
        child.add_child(parent)
    with pytest.raises(ValueError):
        parent.add_child(parent)
    assert [block.content for block in parent.walk()] == ["parent", "child"]


def test_walk_detects_cycles_built_by_hand():
    block = Block()
    block.children = [block]
    with pytest.raises(ValueError):
        list(block.walk())


def test_document_is_never_empty():
    document = Document()
    assert len(document) == 1
    assert document[0].variant is Variant.PARAGRAPH

    document.remove(0)
    assert len(document) == 1

    document.append(Block(content="x"))
    document.clear()
    assert len(document) == 1 and document[0].content == ""


def test_repair_waits_for_guard():
    document = Document()
    document.blocks.clear()
    guard = ReentrancyGuard()
    with guard:
        assert guard.active
        assert repair(document, guard) is False
        assert len(document) == 0
    assert not guard.active
    assert repair(document, guard) is True
    assert len(document) == 1
    assert repair(document, guard) is False


def test_registry_orders_triggers_longest_first(registry):
    triggers = [trigger for trigger, _ in registry.triggers]
    assert triggers.index("## ") < triggers.index("# ")
    assert registry.match_trigger("## ")[1].variant is Variant.H2
    assert registry.match_trigger("# ")[1].variant is Variant.H1
    assert registry.match_trigger("#") is None
    assert registry.is_trigger_prefix("#")
    assert not registry.is_trigger_prefix("hello")
    assert registry.longest_trigger == len("###### ")


def test_registry_rejects_duplicates():
    with pytest.raises(ValueError):
        VariantRegistry([Paragraph(), Heading(1), Heading(1)])


def test_registry_excludes_default_from_recognizers(registry):
    assert registry.default.variant is Variant.PARAGRAPH
    assert all(handler.variant is not Variant.PARAGRAPH for handler in registry.recognizers)
    priorities = [handler.descriptor.priority for handler in registry]
    assert priorities == sorted(priorities)


def test_factory_create_and_fallback(registry):
    factory = BlockFactory(registry)
    assert factory.create(Variant.QUOTE, "q").variant is Variant.QUOTE
    assert factory.create("h2", "t").variant is Variant.H2
    assert factory.create("nonsense", "t").variant is Variant.PARAGRAPH


def test_factory_from_trigger(registry):
    factory = BlockFactory(registry)
    assert factory.from_trigger("### ").variant is Variant.H3
    task = factory.from_trigger("[x]")
    assert task.variant is Variant.TASK and task.checked
    assert factory.from_trigger("hello") is None


def test_factory_from_markdown_priority(registry):
    factory = BlockFactory(registry)
    assert factory.from_markdown("---").variant is Variant.DELIMITER
    assert factory.from_markdown("- [ ] todo").variant is Variant.TASK
    assert factory.from_markdown("- item").variant is Variant.UNORDERED_LIST
    assert factory.from_markdown("just text").variant is Variant.PARAGRAPH


def test_factory_from_markup(registry):
    factory = BlockFactory(registry)
    assert factory.from_markup("<h4>Four</h4>").variant is Variant.H4
    assert factory.from_markup("<ol><li>a</li></ol>").variant is Variant.ORDERED_LIST
    fallback = factory.from_markup("<li>loose item</li>")
    assert fallback.variant is Variant.PARAGRAPH
    assert fallback.content == "loose item"


def test_variant_trigger_matching(registry):
    heading = registry[Variant.H2]
    assert heading.markdown_triggers == ("## ",)
    assert heading.matches_trigger("## ")
    assert not heading.matches_trigger("# ")
    assert Variant.H2.is_heading and not Variant.CODE.is_heading


def test_document_index_of():
    first, second = Block(content="a"), Block(content="a")
    document = Document(blocks=[first, second])
    assert document.index_of(second) == 1
    with pytest.raises(ValueError):
        document.index_of(Block(content="a"))
