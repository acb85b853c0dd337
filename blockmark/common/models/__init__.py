from blockmark.common.models.base import MarkupSpan, Offsets
from blockmark.common.models.settings import ConverterOptions

__all__ = ["MarkupSpan", "Offsets", "ConverterOptions"]
