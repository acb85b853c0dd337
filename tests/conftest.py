import pytest

from blockmark.blocks import Block, Document, build_registry
from blockmark.processor import EditorSession, Parser
from blockmark.processor.highlighter import PygmentsHighlighter


@pytest.fixture
def registry():
    return build_registry(PygmentsHighlighter())


@pytest.fixture
def parser(registry):
    return Parser(registry)


@pytest.fixture
def session(registry):
    return EditorSession(registry=registry)


@pytest.fixture
def make_session():
    """Session over a document holding ``blocks``."""

    def _make(*blocks: Block) -> EditorSession:
        return EditorSession(document=Document(blocks=list(blocks)))

    return _make


@pytest.fixture
def type_text():
    """Type text into a block one character at a time; returns the last action."""

    def _type(session: EditorSession, index: int, text: str):
        action = None
        for char in text:
            session.document[index].content += char
            action = session.classify_key_event(char, session.context(index))
        return action

    return _type
