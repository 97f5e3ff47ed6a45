"""Unit tests for Pydantic data models."""

from datetime import timezone

import pytest
from pydantic import ValidationError

from progressive_schema.core.models import (
    DetectedGeoFields,
    FieldMappings,
    FieldStatistics,
    SchemaBuilderState,
    SchemaChange,
    TransformSuggestion,
    TypeConflict,
)


class TestFieldStatistics:
    """Test FieldStatistics model."""

    def test_defaults(self):
        """Test a bare record is empty and timestamped in UTC."""
        stats = FieldStatistics(path="title")

        assert stats.occurrences == 0
        assert stats.unique_values == 0
        assert stats.first_seen.tzinfo == timezone.utc

    def test_sample_counts_padded(self):
        """Test snapshots without sample counts get one count per sample."""
        stats = FieldStatistics(path="status", unique_samples=["a", "b"])

        assert stats.sample_counts == [1, 1]
        assert stats.unique_values == 2

    def test_sample_counts_truncated(self):
        """Test extra sample counts are dropped."""
        stats = FieldStatistics(path="status", unique_samples=["a"], sample_counts=[3, 4])

        assert stats.sample_counts == [3]

    def test_leaf_name(self):
        """Test leaf name strips parents and array suffix."""
        assert FieldStatistics(path="venue.geo.lat").leaf_name == "lat"
        assert FieldStatistics(path="tags[]").leaf_name == "tags"

    def test_dominant_type_ignores_nulls(self):
        """Test nulls never dominate."""
        stats = FieldStatistics(path="x", type_distribution={"null": 10, "string": 2, "integer": 1})

        assert stats.dominant_type() == "string"
        assert FieldStatistics(path="y", type_distribution={"null": 3}).dominant_type() is None

    def test_negative_counts_rejected(self):
        """Test counters cannot be negative."""
        with pytest.raises(ValidationError):
            FieldStatistics(path="x", occurrences=-1)


class TestSchemaBuilderState:
    """Test SchemaBuilderState model."""

    def test_json_round_trip(self):
        """Test a JSON dump validates back into an equal state."""
        state = SchemaBuilderState(
            version=2,
            record_count=3,
            field_stats={"a": FieldStatistics(path="a", occurrences=3, unique_samples=[1, 2])},
            data_samples=[{"a": 1}],
            detected_geo_fields=DetectedGeoFields(latitude="lat", longitude="lng", confidence=0.9),
            type_conflicts=[TypeConflict(path="a", types={"integer": 2, "string": 1})],
        )

        restored = SchemaBuilderState.model_validate(state.model_dump(mode="json"))

        assert restored == state

    def test_find_type_conflict(self):
        """Test conflict lookup by path."""
        state = SchemaBuilderState(type_conflicts=[TypeConflict(path="a")])

        assert state.find_type_conflict("a").path == "a"
        assert state.find_type_conflict("b") is None

    def test_geo_confidence_bounds(self):
        """Test confidence stays within 0-1."""
        with pytest.raises(ValidationError):
            DetectedGeoFields(confidence=1.5)

    def test_has_coordinates(self):
        """Test a location field alone is not a coordinate detection."""
        assert not DetectedGeoFields(location_field="address").has_coordinates
        assert DetectedGeoFields(combined_field="coords").has_coordinates

    def test_field_mappings_default_empty(self):
        """Test old snapshots without mappings load with empty mappings."""
        state = SchemaBuilderState.model_validate({"record_count": 3})

        assert state.field_mappings == FieldMappings()
        assert not state.field_mappings.has_mappings
        assert FieldMappings(timestamp_path="date").has_mappings


class TestSchemaChange:
    """Test change and suggestion models."""

    def test_description_fallback(self):
        """Test the description falls back to type and path."""
        change = SchemaChange(type="new_field", path="venue")

        assert change.description == "new_field at venue"

    def test_invalid_change_type(self):
        """Test change types are validated."""
        with pytest.raises(ValidationError):
            SchemaChange(type="renamed", path="x")

    def test_transform_suggestion_aliases(self):
        """Test from/to aliases in both directions."""
        suggestion = TransformSuggestion.model_validate(
            {"from": "start_date", "to": "date", "confidence": 76, "reason": "Name similarity"}
        )

        assert suggestion.from_path == "start_date"
        assert suggestion.model_dump(by_alias=True)["to"] == "date"

    def test_confidence_range(self):
        """Test confidence is a 0-100 integer."""
        with pytest.raises(ValidationError):
            TransformSuggestion(from_path="a", to_path="b", confidence=101, reason="x")
