"""
progressive-schema: incremental schema inference over batches of records.
"""

from progressive_schema.core.config import BuilderConfig
from progressive_schema.core.schema import (
    ProgressiveSchemaBuilder,
    compare_schemas,
    detect_transforms,
    generate_change_summary,
)

__version__ = "0.1.0"

__all__ = [
    "BuilderConfig",
    "ProgressiveSchemaBuilder",
    "compare_schemas",
    "detect_transforms",
    "generate_change_summary",
]
