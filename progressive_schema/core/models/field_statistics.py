"""
FieldStatistics model representing everything tracked for a single field path.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, model_validator


def utc_now() -> datetime:
    """Timezone-aware current time used for all engine timestamps."""
    return datetime.now(timezone.utc)


class NumericStats(BaseModel):
    """
    Running numeric summary for a field.

    Attributes:
        min: Smallest value seen
        max: Largest value seen
        avg: Incremental mean (not bit-exact across platforms)
        is_integer: True while every numeric value seen was integral
    """

    min: float
    max: float
    avg: float
    is_integer: bool = True


class EnumValue(BaseModel):
    """A single value of an enum candidate with its observed frequency."""

    value: Any
    count: int = Field(..., ge=0)
    percent: float = Field(..., ge=0.0)


class GeoHints(BaseModel):
    """Geographic role hint attached to a field by geo detection."""

    is_latitude: bool = False
    is_longitude: bool = False
    field_name_pattern: str | None = None
    value_range: bool = False


class FieldStatistics(BaseModel):
    """
    Incremental statistics for one field path.

    Attributes:
        path: Dotted / bracket-suffixed field path (e.g. "location.lat", "tags[].name")
        occurrences: Number of records in which the field was present
        null_count: Number of null values
        unique_values: Approximate unique count (length of unique_samples)
        unique_samples: Bounded first-seen list of distinct primitive values
        sample_counts: Occurrence count for each entry of unique_samples
        type_distribution: Value type -> count
        formats: String format -> count (counters are independent)
        numeric_stats: Running min/max/avg for numeric values
        is_enum_candidate: Whether the field looks like a closed set of values
        enum_values: Values with counts and percentages when is_enum_candidate
        geo_hints: Latitude/longitude role when detected
        first_seen: When the field was first observed
        last_seen: When the field was last observed
        depth: Nesting depth (0 for top-level fields)
    """

    path: str = ""
    occurrences: int = Field(0, ge=0)
    null_count: int = Field(0, ge=0)
    unique_values: int = Field(0, ge=0)
    unique_samples: list[Any] = Field(default_factory=list)
    sample_counts: list[int] = Field(default_factory=list)
    type_distribution: dict[str, int] = Field(default_factory=dict)
    formats: dict[str, int] = Field(default_factory=dict)
    numeric_stats: NumericStats | None = None
    is_enum_candidate: bool = False
    enum_values: list[EnumValue] | None = None
    geo_hints: GeoHints | None = None
    first_seen: datetime = Field(default_factory=utc_now)
    last_seen: datetime = Field(default_factory=utc_now)
    depth: int = Field(0, ge=0)

    @model_validator(mode="after")
    def align_sample_counts(self) -> "FieldStatistics":
        """Snapshots without per-sample counts get a count of 1 per sample."""
        missing = len(self.unique_samples) - len(self.sample_counts)
        if missing > 0:
            self.sample_counts.extend([1] * missing)
        elif missing < 0:
            del self.sample_counts[len(self.unique_samples):]
        self.unique_values = len(self.unique_samples)
        return self

    @property
    def leaf_name(self) -> str:
        """Last segment of the path without any array suffix."""
        return self.path.split(".")[-1].removesuffix("[]")

    def non_null_types(self) -> list[tuple[str, int]]:
        """Observed non-null types ordered by count, most frequent first."""
        entries = [
            (value_type, count)
            for value_type, count in self.type_distribution.items()
            if value_type not in ("null", "undefined") and count > 0
        ]
        return sorted(entries, key=lambda entry: entry[1], reverse=True)

    def dominant_type(self) -> str | None:
        """Most frequent non-null type, or None if only nulls were seen."""
        entries = self.non_null_types()
        return entries[0][0] if entries else None

    class Config:
        json_schema_extra = {
            "example": {
                "path": "status",
                "occurrences": 100,
                "null_count": 0,
                "unique_values": 3,
                "unique_samples": ["active", "inactive", "pending"],
                "sample_counts": [34, 33, 33],
                "type_distribution": {"string": 100},
                "formats": {},
                "is_enum_candidate": True,
                "enum_values": [
                    {"value": "active", "count": 34, "percent": 34.0},
                    {"value": "inactive", "count": 33, "percent": 33.0},
                    {"value": "pending", "count": 33, "percent": 33.0}
                ],
                "depth": 0
            }
        }
