"""The fixed set of variants a parser, factory or state machine works with."""

from collections.abc import Iterable, Iterator
from types import MappingProxyType

from blockmark.blocks.base import BlockVariant
from blockmark.blocks.code import Code, SyntaxHighlighter
from blockmark.blocks.image import Image
from blockmark.blocks.lists import OrderedList, TaskList, UnorderedList
from blockmark.blocks.models import Variant
from blockmark.blocks.table import Table
from blockmark.blocks.text import Delimiter, Heading, Paragraph, Quote


class VariantRegistry:
    """Immutable after construction.

    Variants are kept in priority order (registration order breaks ties);
    triggers longest first so ``## `` is tried before ``# ``.
    """

    def __init__(self, variants: Iterable[BlockVariant]) -> None:
        ordered = sorted(enumerate(variants), key=lambda pair: (pair[1].descriptor.priority, pair[0]))
        by_variant: dict[Variant, BlockVariant] = {}
        for _, handler in ordered:
            if handler.variant in by_variant:
                raise ValueError(f"Variant registered twice: {handler.variant.value}")
            by_variant[handler.variant] = handler

        self._variants: tuple[BlockVariant, ...] = tuple(handler for _, handler in ordered)
        self._by_variant = MappingProxyType(by_variant)
        self._triggers: tuple[tuple[str, BlockVariant], ...] = tuple(
            sorted(
                ((trigger, handler) for handler in self._variants for trigger in handler.markdown_triggers),
                key=lambda pair: -len(pair[0]),
            )
        )

    def __iter__(self) -> Iterator[BlockVariant]:
        return iter(self._variants)

    def __len__(self) -> int:
        return len(self._variants)

    def __contains__(self, variant: object) -> bool:
        return variant in self._by_variant

    def get(self, variant: Variant) -> BlockVariant | None:
        return self._by_variant.get(variant)

    def __getitem__(self, variant: Variant) -> BlockVariant:
        return self._by_variant[variant]

    @property
    def default(self) -> BlockVariant:
        return self._by_variant[Variant.PARAGRAPH]

    @property
    def recognizers(self) -> tuple[BlockVariant, ...]:
        """Variants asked to recognize input, the default variant excluded."""
        return tuple(handler for handler in self._variants if handler.variant is not Variant.PARAGRAPH)

    @property
    def triggers(self) -> tuple[tuple[str, BlockVariant], ...]:
        return self._triggers

    @property
    def longest_trigger(self) -> int:
        return max((len(trigger) for trigger, _ in self._triggers), default=0)

    def match_trigger(self, text: str) -> tuple[str, BlockVariant] | None:
        for trigger, handler in self._triggers:
            if text == trigger:
                return trigger, handler
        return None

    def is_trigger_prefix(self, text: str) -> bool:
        return bool(text) and any(trigger.startswith(text) and trigger != text for trigger, _ in self._triggers)


def build_registry(highlighter: SyntaxHighlighter | None = None) -> VariantRegistry:
    """The standard variant set. Without a highlighter, code renders as escaped text."""
    return VariantRegistry(
        [
            Paragraph(),
            *(Heading(level) for level in range(1, 7)),
            Delimiter(),
            TaskList(),
            UnorderedList(),
            OrderedList(),
            Code(highlighter),
            Quote(),
            Table(),
            Image(),
        ]
    )
