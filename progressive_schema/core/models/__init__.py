"""
Core data models for the progressive schema inference engine.

All models use Pydantic for runtime validation and snapshot serialization.
"""

from .field_statistics import EnumValue, FieldStatistics, GeoHints, NumericStats
from .schema_change import BatchResult, SchemaChange, SchemaComparison, TransformSuggestion
from .schema_state import (
    DetectedGeoFields,
    FieldMappings,
    SchemaBuilderState,
    TypeConflict,
    TypeConflictSample,
)

__all__ = [
    "FieldStatistics",
    "NumericStats",
    "EnumValue",
    "GeoHints",
    "SchemaBuilderState",
    "DetectedGeoFields",
    "FieldMappings",
    "TypeConflict",
    "TypeConflictSample",
    "SchemaChange",
    "SchemaComparison",
    "TransformSuggestion",
    "BatchResult",
]
