"""
Batch planning and execution utilities.
"""
from .variations import (
    VARIATION_MODIFIERS,
    VariationBatchRunner,
    build_instruction,
    derive_instructions,
)

__all__ = [
    "VARIATION_MODIFIERS",
    "VariationBatchRunner",
    "build_instruction",
    "derive_instructions",
]
