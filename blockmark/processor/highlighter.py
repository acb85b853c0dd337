"""Syntax highlighting for code blocks, backed by Pygments."""

from functools import cache

from pygments import highlight as pygments_highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.lexer import Lexer

from blockmark.common.utils.text import escape

# alias -> canonical key
SUPPORTED_LANGUAGES: dict[str, str] = {
    "javascript": "javascript",
    "js": "javascript",
    "typescript": "typescript",
    "ts": "typescript",
    "python": "python",
    "py": "python",
    "java": "java",
    "csharp": "csharp",
    "cs": "csharp",
    "php": "php",
    "css": "css",
    "markup": "markup",
    "html": "markup",
    "json": "json",
    "sql": "sql",
    "bash": "bash",
    "sh": "bash",
    "shell": "bash",
}

# canonical key -> Pygments lexer name, where they differ
_LEXER_NAMES = {"markup": "html"}


@cache
def _lexer(language: str) -> Lexer:
    # keep the code's own leading and trailing newlines
    options = {"stripnl": False, "ensurenl": False}
    if language == "php":
        options["startinline"] = True
    return get_lexer_by_name(_LEXER_NAMES.get(language, language), **options)


class PygmentsHighlighter:
    def __init__(self) -> None:
        self.formatter = HtmlFormatter(nowrap=True)

    def normalize_language(self, name: str) -> str:
        """Canonical key for ``name``, or "" when unsupported."""
        return SUPPORTED_LANGUAGES.get((name or "").strip().lower(), "")

    def highlight(self, code: str, language: str) -> str:
        """Highlighted markup; plain escaped text for unsupported languages."""
        key = self.normalize_language(language)
        if not key:
            return escape(code)
        return pygments_highlight(code, _lexer(key), self.formatter)
