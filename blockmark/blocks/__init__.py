"""Block model, the variants and the registry that ties them together."""

from blockmark.blocks.base import BlockVariant, VariantDescriptor
from blockmark.blocks.document import Document, EditContext, ReentrancyGuard, repair
from blockmark.blocks.factory import BlockFactory
from blockmark.blocks.models import Block, CodePayload, ImagePayload, KeyEvent, TablePayload, Variant
from blockmark.blocks.registry import VariantRegistry, build_registry

__all__ = [
    "Block",
    "BlockFactory",
    "BlockVariant",
    "CodePayload",
    "Document",
    "EditContext",
    "ImagePayload",
    "KeyEvent",
    "ReentrancyGuard",
    "TablePayload",
    "Variant",
    "VariantDescriptor",
    "VariantRegistry",
    "build_registry",
    "repair",
]
