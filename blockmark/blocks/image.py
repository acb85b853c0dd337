"""Images. Only the data: source, alt text and dimensions."""

import re

from blockmark.blocks.base import BlockVariant, VariantDescriptor
from blockmark.blocks.models import Block, ImagePayload, Variant
from blockmark.common.utils.config import get_config
from blockmark.common.utils.markup import get_attr, leading_span
from blockmark.common.utils.text import escape_attr

_IMAGE_RE = re.compile(r"!\[(?P<alt>[^\]]*)\]\((?P<src>[^)\s]+)(?:\s+\"[^\"]*\")?\)")
_SOURCE_PREFIXES = ("http://", "https://", "data:", "./", "../", "/")


def parse_image_source(text: str) -> tuple[str, str] | None:
    """``(src, alt)`` for ``![alt](src)`` or a bare URL, path or data URI."""
    text = text.strip()
    match = _IMAGE_RE.fullmatch(text)
    if match is not None:
        return match.group("src"), match.group("alt")
    if text.startswith(_SOURCE_PREFIXES) and not any(char.isspace() for char in text):
        return text, get_config().default_image_alt
    return None


def image_markdown(src: str, alt: str) -> str:
    return f"![{alt}]({src})" if src else ""


def _dimension(value: str | None) -> int:
    return int(value) if value and value.isdigit() else 0


def image_payload(block: Block) -> ImagePayload:
    if not isinstance(block.payload, ImagePayload):
        src, alt = parse_image_source(block.content) or ("", "")
        block.payload = ImagePayload(src=src, alt=alt)
    return block.payload


class Image(BlockVariant):
    descriptor = VariantDescriptor(
        variant=Variant.IMAGE,
        triggers=("![",),
        priority=90,
        accepts_triggers=False,
        mergeable=False,
    )

    def create(
        self,
        content: str = "",
        src: str | None = None,
        alt: str | None = None,
        dimensions: tuple[int, int] = (0, 0),
        **fields,
    ) -> Block:
        if src is None:
            src, parsed_alt = parse_image_source(content) or ("", "")
            alt = parsed_alt if alt is None else alt
        payload = ImagePayload(src=src, alt=alt or "", dimensions=dimensions)
        return super().create(image_markdown(payload.src, payload.alt), payload=payload, **fields)

    def _sync(self, block: Block) -> None:
        payload = image_payload(block)
        block.content = image_markdown(payload.src, payload.alt)
        block.markup = self.serialize_markup(block)

    def set_source(self, block: Block, src: str) -> None:
        image_payload(block).src = src.strip()
        self._sync(block)

    def set_alt(self, block: Block, alt: str) -> None:
        image_payload(block).alt = alt.strip()
        self._sync(block)

    def set_dimensions(self, block: Block, width: int, height: int) -> None:
        image_payload(block).dimensions = (max(0, width), max(0, height))
        self._sync(block)

    def plain_text(self, block: Block) -> str:
        return block.content or image_payload(block).alt

    def apply_transformation(self, block: Block, seed: str) -> None:
        super().apply_transformation(block, "")
        parsed = parse_image_source(seed)
        if parsed is None:
            # text that is not a source is kept as alt text
            block.payload = ImagePayload(alt=" ".join(seed.split()))
        else:
            block.payload = ImagePayload(src=parsed[0], alt=parsed[1])
        self._sync(block)

    def serialize_markdown(self, block: Block) -> str:
        payload = image_payload(block)
        return image_markdown(payload.src, payload.alt)

    def serialize_markup(self, block: Block) -> str:
        payload = image_payload(block)
        attrs = f'src="{escape_attr(payload.src)}" alt="{escape_attr(payload.alt)}"'
        width, height = payload.dimensions
        if width:
            attrs += f' width="{width}"'
        if height:
            attrs += f' height="{height}"'
        return f"<img {attrs}>"

    def _from_markdown(self, text: str) -> Block | None:
        parsed = parse_image_source(text)
        if parsed is None:
            return None
        return self.create(src=parsed[0], alt=parsed[1])

    def _from_markup(self, text: str) -> Block | None:
        span = leading_span(text, (), void_tags=("img",))
        if span is None:
            return None
        src = get_attr(span.attrs, "src") or ""
        if not src:
            return None
        dimensions = (_dimension(get_attr(span.attrs, "width")), _dimension(get_attr(span.attrs, "height")))
        return self.create(
            src=src,
            alt=get_attr(span.attrs, "alt") or "",
            dimensions=dimensions,
            markup=span.markup,
        )
