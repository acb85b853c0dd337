"""Markdown to markup conversion with markdown-it-py."""

from functools import cache

from markdown_it import MarkdownIt
from mdit_py_plugins.anchors import anchors_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from blockmark.common.models import ConverterOptions


@cache
def _renderer(options: ConverterOptions) -> MarkdownIt:
    # CommonMark base with GFM tables and strikethrough
    md = MarkdownIt("commonmark", {"html": options.html}).enable("table").enable("strikethrough")
    if options.task_lists:
        md.use(tasklists_plugin)
    if options.header_ids:
        md.use(anchors_plugin)
    return md


class MarkdownConverter:
    """Turns markdown into markup. Knows nothing about blocks."""

    def convert_to_markup(self, markdown: str, options: ConverterOptions | None = None) -> str:
        return _renderer(options or ConverterOptions()).render(markdown)
