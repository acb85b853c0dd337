"""The capability set every block variant implements."""

from pydantic import BaseModel

from blockmark.blocks.document import EditContext
from blockmark.blocks.models import Block, KeyEvent, Variant
from blockmark.common.utils.logger import get_logger
from blockmark.common.utils.text import normalize_spaces, strip_tags

logger = get_logger(__name__)


class VariantDescriptor(BaseModel):
    """Static metadata of a variant."""

    variant: Variant
    triggers: tuple[str, ...] = ()  # typed into an empty block to convert it
    priority: int = 100  # lower is asked first; registration order breaks ties
    is_list: bool = False
    accepts_triggers: bool = True  # its own text may convert it
    mergeable: bool = True  # Backspace may join it with a neighbour

    model_config = {"frozen": True}


class BlockVariant:
    """Base class for variants.

    Subclasses set ``descriptor`` and implement ``_from_markdown``,
    ``_from_markup`` and the two serializers. The public recognizers wrap
    the private parsers so that malformed input yields ``None``/``False``
    instead of raising.
    """

    descriptor: VariantDescriptor

    @property
    def variant(self) -> Variant:
        return self.descriptor.variant

    @property
    def markdown_triggers(self) -> tuple[str, ...]:
        return self.descriptor.triggers

    def matches_trigger(self, text: str) -> bool:
        return normalize_spaces(text) in self.descriptor.triggers

    # Construction

    def create(self, content: str = "", **fields) -> Block:
        return Block(variant=self.variant, content=content, **fields)

    def plain_text(self, block: Block) -> str:
        """Text that survives conversion into another variant."""
        return block.content or strip_tags(block.markup).strip()

    def apply_transformation(self, block: Block, seed: str) -> None:
        """Re-type ``block`` into this variant with ``seed`` as its content."""
        block.variant = self.variant
        block.payload = None
        block.checked = False
        block.content = seed

    def on_trigger(self, block: Block, trigger: str) -> None:
        """Called after ``block`` was converted by typing ``trigger``."""

    # Serialization

    def serialize_markdown(self, block: Block) -> str:
        raise NotImplementedError

    def serialize_markup(self, block: Block) -> str:
        raise NotImplementedError

    # Recognition

    def _from_markdown(self, text: str) -> Block | None:
        raise NotImplementedError

    def _from_markup(self, text: str) -> Block | None:
        raise NotImplementedError

    def parse_markdown(self, text: str) -> Block | None:
        try:
            return self._from_markdown(text)
        except Exception as e:
            logger.debug(f"{self.variant.value} could not parse markdown: {e}")
            return None

    def parse_markup(self, text: str) -> Block | None:
        try:
            return self._from_markup(text)
        except Exception as e:
            logger.debug(f"{self.variant.value} could not parse markup: {e}")
            return None

    def can_parse_markdown(self, text: str) -> bool:
        return self.parse_markdown(text) is not None

    def can_parse_markup(self, text: str) -> bool:
        return self.parse_markup(text) is not None

    # Editing

    def handle_key_press(self, event: KeyEvent, context: EditContext) -> bool:
        """Variant-specific key handling. Returns whether the event was consumed."""
        return False

    def handle_enter_key(self, event: KeyEvent, context: EditContext) -> bool:
        """Variant-specific Enter handling. Returns whether default handling is suppressed."""
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.variant.value})"
