"""Segmentation of markup into top-level block spans."""

import re
from collections.abc import Collection, Iterator

from blockmark.common.models import MarkupSpan
from blockmark.common.utils.text import strip_tags, unescape

# Ordered set of block-level tags recognised while segmenting.
BLOCK_TAGS: tuple[str, ...] = (
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "div",
    "del",
    "p",
    "ol",
    "ul",
    "blockquote",
    "pre",
    "code",
    "li",
    "table",
)
VOID_TAGS: tuple[str, ...] = ("hr", "img")

# Blocks that can sit inside a list item or a quote.
CHILD_TAGS: tuple[str, ...] = ("h1", "h2", "h3", "h4", "h5", "h6", "ol", "ul", "blockquote", "pre", "table")

_TAG_RE = re.compile(r"<(?P<close>/?)(?P<name>[a-zA-Z][a-zA-Z0-9-]*)(?P<attrs>(?:\s[^>]*)?|/)>")
_CODE_RE = re.compile(r"<code\b[^>]*>(?P<body>[\s\S]*)</code>", re.IGNORECASE)


def iter_spans(
    markup: str,
    tags: Collection[str] = BLOCK_TAGS,
    void_tags: Collection[str] = VOID_TAGS,
) -> Iterator[MarkupSpan]:
    """Yield balanced top-level elements whose tag is in ``tags``.

    Same-name tags nested inside a span are counted so an inner list never
    closes the outer one. An element left open at the end of the input loses
    its opening tag and scanning resumes right after it, so the blocks it
    wrapped are still found.
    """
    position = 0
    while True:
        current: tuple[str, str, int, int] | None = None  # tag, attrs, start, inner start
        depth = 0

        for match in _TAG_RE.finditer(markup, position):
            name = match.group("name").lower()
            closing = bool(match.group("close"))
            attrs = match.group("attrs") or ""
            self_closing = attrs.rstrip().endswith("/")

            if current is None:
                if closing:
                    continue
                if name in void_tags:
                    yield MarkupSpan(
                        tag=name,
                        attrs=attrs.rstrip("/ ").strip(),
                        markup=match.group(0),
                        offsets=(match.start(), match.end()),
                        void=True,
                    )
                elif name in tags and not self_closing:
                    current = (name, attrs.strip(), match.start(), match.end())
                    depth = 1
                continue

            if name != current[0] or self_closing:
                continue
            depth += -1 if closing else 1
            if depth == 0:
                tag, span_attrs, start, inner_start = current
                yield MarkupSpan(
                    tag=tag,
                    attrs=span_attrs,
                    markup=markup[start : match.end()],
                    inner=markup[inner_start : match.start()],
                    offsets=(start, match.end()),
                )
                current = None

        if current is None:
            return
        position = current[3]


def segment(markup: str) -> list[MarkupSpan]:
    return list(iter_spans(markup))


def child_spans(markup: str) -> list[MarkupSpan]:
    """Block spans nested inside a list item or a quote."""
    return list(iter_spans(markup, tags=CHILD_TAGS))


def remove_spans(markup: str, spans: list[MarkupSpan]) -> str:
    """Cut ``spans`` (found in ``markup``) out of ``markup``."""
    pieces: list[str] = []
    cursor = 0
    for span in spans:
        start, end = span.offsets
        pieces.append(markup[cursor:start])
        cursor = end
    pieces.append(markup[cursor:])
    return "".join(pieces)


def get_attr(attrs: str, name: str) -> str | None:
    """Read one attribute value out of raw attribute text."""
    match = re.search(
        rf"(?:^|\s){re.escape(name)}\s*=\s*(?:\"([^\"]*)\"|'([^']*)'|([^\s\"'>]+))",
        attrs,
        re.IGNORECASE,
    )
    if match is None:
        return None
    value = next(group for group in match.groups() if group is not None)
    return unescape(value)


def has_attr(attrs: str, name: str) -> bool:
    return re.search(rf"(?:^|\s){re.escape(name)}(?=\s|=|/|$)", attrs, re.IGNORECASE) is not None


def opening_attrs(markup: str) -> str:
    """Attribute text of the first tag in ``markup``."""
    match = _TAG_RE.search(markup)
    if match is None or match.group("close"):
        return ""
    return (match.group("attrs") or "").rstrip("/ ").strip()


def code_text(markup: str) -> str:
    """Text of the innermost code element, or of the whole span when there is none."""
    body = markup
    match = _CODE_RE.search(body)
    while match is not None:
        body = match.group("body")
        match = _CODE_RE.search(body)
    # converters end the code with one newline of their own
    return strip_tags(body).removesuffix("\n")


def code_language(markup: str) -> str:
    """Language named by a ``language-x`` class on the code element."""
    match = re.search(r"<code\b([^>]*)>", markup, re.IGNORECASE)
    attrs = match.group(1) if match else opening_attrs(markup)
    classes = get_attr(attrs, "class") or ""
    for name in classes.split():
        if name.startswith("language-"):
            return name[len("language-") :]
        if name.startswith("lang-"):
            return name[len("lang-") :]
    return ""


def list_items(span: MarkupSpan) -> list[str]:
    """Top-level item texts of a list span, nested blocks left out."""
    items: list[str] = []
    for item in iter_spans(span.inner, tags=("li",), void_tags=()):
        text = strip_tags(remove_spans(item.inner, child_spans(item.inner)))
        items.append(" ".join(line.strip() for line in text.split("\n") if line.strip()))
    return items


def text_content(span: MarkupSpan) -> str:
    """Variant-aware text of a span: list items line by line, code without tags."""
    if span.void:
        return ""
    if span.tag in ("pre", "code"):
        return code_text(span.markup)
    if span.tag in ("ul", "ol"):
        return "\n".join(list_items(span))
    if span.tag == "blockquote":
        inner = [s for s in iter_spans(span.inner) if not s.void]
        if inner:
            return "\n".join(text_content(s) for s in inner)
    return strip_tags(span.inner).strip()


def leading_span(
    markup: str,
    tags: Collection[str],
    void_tags: Collection[str] = (),
) -> MarkupSpan | None:
    """The element ``markup`` starts with, if its tag is one of ``tags``."""
    stripped = markup.strip()
    if not stripped.startswith("<"):
        return None
    for span in iter_spans(stripped, tags=tags, void_tags=void_tags):
        return span if span.offsets[0] == 0 else None
    return None
