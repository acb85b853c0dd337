"""Maps a variant tag, a trigger or a piece of input to a new block."""

from blockmark.blocks.document import ReentrancyGuard
from blockmark.blocks.models import Block, Variant
from blockmark.blocks.registry import VariantRegistry
from blockmark.common.utils.logger import get_logger
from blockmark.common.utils.text import normalize_spaces, strip_tags

logger = get_logger(__name__)


class BlockFactory:
    def __init__(self, registry: VariantRegistry, guard: ReentrancyGuard | None = None) -> None:
        self.registry = registry
        self.guard = guard or ReentrancyGuard()

    def create(self, variant: Variant | str = Variant.PARAGRAPH, content: str = "", **fields) -> Block:
        """Build a block of ``variant``; unknown variants give a paragraph."""
        handler = self.registry.default
        try:
            handler = self.registry.get(Variant(variant)) or handler
        except ValueError:
            logger.debug(f"Unknown variant {variant!r}, using {handler.variant.value}.")
        with self.guard:
            block = handler.create(content, **fields)
            block.markup = handler.serialize_markup(block)
        return block

    def from_trigger(self, text: str) -> Block | None:
        """A fresh block for text that is exactly a trigger, else ``None``."""
        match = self.registry.match_trigger(normalize_spaces(text))
        if match is None:
            return None
        trigger, handler = match
        with self.guard:
            block = handler.create()
            handler.on_trigger(block, trigger)
            block.markup = handler.serialize_markup(block)
        return block

    def from_markup(self, text: str) -> Block:
        """First variant (in priority order) that recognizes ``text``; a paragraph otherwise."""
        with self.guard:
            for handler in self.registry.recognizers:
                block = handler.parse_markup(text)
                if block is not None:
                    return block
            return self.registry.default.parse_markup(text) or self._paragraph(text)

    def from_markdown(self, text: str) -> Block:
        with self.guard:
            for handler in self.registry.recognizers:
                block = handler.parse_markdown(text)
                if block is not None:
                    block.markup = handler.serialize_markup(block)
                    return block
            block = self.registry.default.create(text.strip())
            block.markup = self.registry.default.serialize_markup(block)
            return block

    def _paragraph(self, markup: str) -> Block:
        handler = self.registry.default
        return handler.create(strip_tags(markup).strip(), markup=markup)
