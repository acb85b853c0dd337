"""Keystroke classification: triggers, Enter, Backspace, Delete and variant keys."""

from blockmark.blocks import Block, KeyEvent, Variant, VariantRegistry
from blockmark.blocks.code import Code
from blockmark.blocks.models import CodePayload
from blockmark.blocks.table import Table
from blockmark.blocks.text import Paragraph
from blockmark.common.utils.config import get_config, set_config
from blockmark.processor import ActionKind, EditorSession, KeyBuffer, MachineState


def test_heading_triggers(session, type_text):
    action = type_text(session, 0, "# ")
    assert action.kind is ActionKind.CONVERT
    assert action.variant is Variant.H1
    assert session.document[0].variant is Variant.H1
    assert session.document[0].content == ""

    session.load("")
    type_text(session, 0, "##")
    assert session.machine.state is MachineState.BUFFERING
    action = type_text(session, 0, " ")
    assert action.variant is Variant.H2


def test_trigger_with_non_breaking_space(session, type_text):
    action = type_text(session, 0, "#\u00a0")
    assert action.kind is ActionKind.CONVERT
    assert session.document[0].variant is Variant.H1


def test_list_then_task_trigger(session, type_text):
    type_text(session, 0, "- ")
    assert session.document[0].variant is Variant.UNORDERED_LIST
    action = type_text(session, 0, "[x]")
    assert action.variant is Variant.TASK
    assert action.trigger == "[x]"
    block = session.document[0]
    assert block.variant is Variant.TASK and block.checked


def test_ordinary_text_is_left_alone(session, type_text):
    action = type_text(session, 0, "hello #")
    assert action.kind is ActionKind.NONE
    assert session.document[0].variant is Variant.PARAGRAPH
    assert session.machine.state is MachineState.IDLE


def test_typed_code_fence_converts(session, type_text):
    action = type_text(session, 0, "```")
    assert action.variant is Variant.CODE


def test_triggers_ignored_in_code(make_session, type_text):
    session = make_session(Block(variant=Variant.CODE, payload=CodePayload()))
    action = type_text(session, 0, "# ")
    assert action.kind is ActionKind.NONE
    assert session.document[0].variant is Variant.CODE


def test_list_enter_adds_item_then_exits(make_session):
    session = make_session(Block(variant=Variant.UNORDERED_LIST, content="a"))
    action = session.classify_key_event("Enter", session.context(0))
    assert action.kind is ActionKind.NEW_ITEM
    assert session.document[0].content == "a\n"

    action = session.classify_key_event("Enter", session.context(0))
    assert action.kind is ActionKind.EXIT_LIST
    assert action.index == 1
    assert session.document[0].content == "a"
    assert session.document[1].variant is Variant.PARAGRAPH


def test_list_enter_mid_list_opens_an_item_at_the_caret(make_session):
    session = make_session(Block(variant=Variant.UNORDERED_LIST, content="a\nb"))
    action = session.classify_key_event("Enter", session.context(0, caret=1))
    assert action.kind is ActionKind.NEW_ITEM
    assert action.caret == 2
    assert len(session.document) == 1
    assert session.document[0].variant is Variant.UNORDERED_LIST
    assert session.document[0].content == "a\n\nb"


def test_enter_in_empty_list_leaves_it(make_session):
    session = make_session(Block(variant=Variant.ORDERED_LIST))
    action = session.classify_key_event("Enter", session.context(0))
    assert action.kind is ActionKind.EXIT_LIST
    assert len(session.document) == 1
    assert session.document[0].variant is Variant.PARAGRAPH


def test_task_enter_starts_a_new_task(make_session):
    session = make_session(Block(variant=Variant.TASK, content="buy milk", checked=True))
    action = session.classify_key_event("Enter", session.context(0, caret=3))
    assert action.kind is ActionKind.NEW_ITEM
    assert action.index == 1
    assert session.document[0].content == "buy"
    new = session.document[1]
    assert new.variant is Variant.TASK
    assert new.content == " milk"
    assert not new.checked

    session.document[1].content = ""
    action = session.classify_key_event("Enter", session.context(1))
    assert action.kind is ActionKind.EXIT_LIST
    assert session.document[1].variant is Variant.PARAGRAPH


def test_task_ctrl_space(make_session):
    session = make_session(Block(variant=Variant.TASK, content="item"))
    action = session.classify_key_event(KeyEvent(key=" ", ctrl=True), session.context(0))
    assert action.kind is ActionKind.VARIANT
    assert session.document[0].checked
    assert "checked" in session.document[0].markup


def test_enter_splits_at_caret(make_session):
    session = make_session(Block(content="hello world"))
    action = session.classify_key_event("Enter", session.context(0, caret=5))
    assert action.kind is ActionKind.SPLIT
    assert action.index == 1 and action.caret == 0
    assert [block.content for block in session.document] == ["hello", " world"]


def test_shift_enter_is_not_handled(make_session):
    session = make_session(Block(content="line"))
    action = session.classify_key_event(KeyEvent(key="Enter", shift=True), session.context(0))
    assert action.kind is ActionKind.NONE
    assert len(session.document) == 1


def test_enter_on_fence_line_makes_code(make_session):
    session = make_session(Block(content="```python"))
    action = session.classify_key_event("Enter", session.context(0))
    assert action.kind is ActionKind.CONVERT
    assert action.variant is Variant.CODE
    block = session.document[0]
    assert block.variant is Variant.CODE
    assert block.content == ""
    assert block.payload.language == "python"
    assert len(session.document) == 1


def test_enter_on_tilde_fence(make_session):
    session = make_session(Block(content="~~~ js"))
    session.classify_key_event("Enter", session.context(0))
    block = session.document[0]
    assert block.variant is Variant.CODE
    assert block.payload.language == "js"


def test_code_keys(make_session):
    session = make_session(Block(variant=Variant.CODE, content="ab", payload=CodePayload(language="py")))
    action = session.classify_key_event("Tab", session.context(0, caret=1))
    assert action.kind is ActionKind.VARIANT
    assert session.document[0].content == "a\tb"

    action = session.classify_key_event("Enter", session.context(0))
    assert action.kind is ActionKind.VARIANT
    assert session.document[0].content == "a\tb\n"

    action = session.classify_key_event("Enter", session.context(0))
    assert action.kind is ActionKind.SPLIT
    assert session.document[0].content == "a\tb"
    assert session.document[1].variant is Variant.PARAGRAPH
    assert session.document[1].content == ""


def test_code_tab_follows_config(make_session):
    original = get_config()
    set_config(original.model_copy(update={"code_tab": "    "}))
    try:
        session = make_session(Block(variant=Variant.CODE, content="x", payload=CodePayload()))
        session.classify_key_event("Tab", session.context(0, caret=0))
        assert session.document[0].content == "    x"
    finally:
        set_config(original)


def test_table_keys(make_session):
    table = Table()
    session = make_session(table.create(headers=["a", "b"], rows=[["1", "2"]]))
    context = session.context(0)
    action = session.classify_key_event("Tab", context)
    assert action.kind is ActionKind.VARIANT
    assert context.cell == (-1, 1)

    action = session.classify_key_event("Enter", context)
    assert action.kind is ActionKind.VARIANT
    assert len(session.document[0].payload.rows) == 2
    assert len(session.document) == 1


def test_backspace_removes_empty_block(make_session):
    session = make_session(Block(content="a"), Block(content=""))
    action = session.classify_key_event("Backspace", session.context(1, caret=0))
    assert action.kind is ActionKind.REMOVE
    assert action.index == 0 and action.caret == 1
    assert len(session.document) == 1


def test_backspace_merges_into_previous(make_session):
    session = make_session(Block(content="ab"), Block(content="cd"))
    action = session.classify_key_event("Backspace", session.context(1, caret=0))
    assert action.kind is ActionKind.MERGE
    assert action.caret == 2
    assert [block.content for block in session.document] == ["abcd"]


def test_backspace_leaves_code_alone(make_session):
    session = make_session(Block(variant=Variant.CODE, content="x", payload=CodePayload()), Block(content="y"))
    action = session.classify_key_event("Backspace", session.context(1, caret=0))
    assert action.kind is ActionKind.NONE
    assert len(session.document) == 2


def test_backspace_not_at_start_or_first_block(make_session):
    session = make_session(Block(content="ab"), Block(content="cd"))
    assert session.classify_key_event("Backspace", session.context(0, caret=0)).kind is ActionKind.NONE
    assert session.classify_key_event("Backspace", session.context(1, caret=1)).kind is ActionKind.NONE
    assert len(session.document) == 2


def test_delete_removes_empty_block(make_session):
    session = make_session(Block(content="a"), Block(content=""), Block(content="b"))
    action = session.classify_key_event("Delete", session.context(1))
    assert action.kind is ActionKind.REMOVE
    assert action.index == 1
    assert [block.content for block in session.document] == ["a", "b"]

    assert session.classify_key_event("Delete", session.context(0)).kind is ActionKind.NONE


def test_delete_keeps_the_last_block(session):
    action = session.classify_key_event("Delete", session.context(0))
    assert action.kind is ActionKind.NONE
    assert len(session.document) == 1


class ExplodingParagraph(Paragraph):
    def handle_enter_key(self, event, context):
        raise RuntimeError("boom")


def test_failing_enter_handler_falls_back_to_split():
    session = EditorSession(registry=VariantRegistry([ExplodingParagraph()]))
    session.document[0].content = "ab"
    action = session.classify_key_event("Enter", session.context(0, caret=1))
    assert action.kind is ActionKind.SPLIT
    assert [block.content for block in session.document] == ["a", "b"]


def test_out_of_range_focus_is_ignored(session):
    action = session.classify_key_event("a", session.context(5))
    assert action.kind is ActionKind.NONE


def test_key_buffer_bounds():
    buffer = KeyBuffer(3)
    for key in "abcd":
        buffer.push(key)
    assert buffer.text == "bcd"
    assert buffer.size == 3
    assert buffer.pop() == "d"
    buffer.clear()
    assert buffer.pop() is None
    assert KeyBuffer(0).size == 1

    for key in "x``":
        buffer.push(key)
    assert buffer.trailing_run("`~") == ("`", 2)
    assert buffer.trailing_run("~") == ("", 0)


def test_buffer_size_from_registry(session):
    assert session.machine.buffer.size == len("###### ")


def test_buffer_resets_when_focus_moves(make_session, type_text):
    session = make_session(Block(), Block())
    type_text(session, 0, "#")
    assert session.machine.buffer.text == "#"
    type_text(session, 1, "x")
    assert session.machine.buffer.text == "x"
    assert session.document[0].variant is Variant.PARAGRAPH


def test_code_variant_is_registered(session):
    assert isinstance(session.registry[Variant.CODE], Code)
