"""In-place re-typing of blocks."""

from blockmark.blocks.document import ReentrancyGuard
from blockmark.blocks.models import Block, Variant
from blockmark.blocks.registry import VariantRegistry
from blockmark.common.utils.logger import get_logger
from blockmark.common.utils.text import strip_tags

logger = get_logger(__name__)


def resolve_variant(target: Variant | str) -> Variant | None:
    if isinstance(target, Variant):
        return target
    try:
        return Variant(str(target).strip().lower())
    except ValueError:
        return None


class ConversionEngine:
    """Re-types one block into another variant. Never changes the block count."""

    def __init__(self, registry: VariantRegistry, guard: ReentrancyGuard | None = None) -> None:
        self.registry = registry
        self.guard = guard or ReentrancyGuard()

    def seed_text(self, block: Block) -> str:
        """Plain-text projection of the block in its current variant."""
        source = self.registry.get(block.variant)
        if source is None:
            return strip_tags(block.markup)
        return source.plain_text(block)

    def convert(self, block: Block, target: Variant | str, seed: str | None = None) -> bool:
        """Convert ``block`` to ``target``. Returns whether the block changed.

        Unknown targets and the block's own variant are no-ops. A failing
        transformation leaves the block as it was.
        """
        variant = resolve_variant(target)
        handler = self.registry.get(variant) if variant is not None else None
        if handler is None:
            logger.debug(f"Unknown conversion target {target!r}, ignoring.")
            return False
        if block.variant is variant:
            return False

        if seed is None:
            seed = self.seed_text(block)
        snapshot = block.model_copy()
        with self.guard:
            try:
                block.content = ""
                handler.apply_transformation(block, seed)
                block.markup = handler.serialize_markup(block)
            except Exception as e:
                logger.warning(f"Converting {snapshot.variant.value} to {variant.value} failed: {e}")
                for field in ("variant", "content", "markup", "checked", "payload"):
                    setattr(block, field, getattr(snapshot, field))
                return False

        logger.debug(f"Converted block from {snapshot.variant.value} to {variant.value}.")
        return True
