"""
Schema inference, pattern detection, generation and comparison.
"""

from .builder import ProgressiveSchemaBuilder, SchemaStateError
from .comparison import compare_schemas, generate_change_summary
from .generator import SchemaGenerator
from .transforms import detect_transforms

__all__ = [
    "ProgressiveSchemaBuilder",
    "SchemaStateError",
    "SchemaGenerator",
    "compare_schemas",
    "generate_change_summary",
    "detect_transforms",
]
