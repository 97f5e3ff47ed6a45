"""Unit tests for schema document generation."""

from datetime import datetime, timezone

import pytest

from progressive_schema.core.models import SchemaBuilderState
from progressive_schema.core.schema import ProgressiveSchemaBuilder, SchemaGenerator
from progressive_schema.core.schema.generator import find_property
from progressive_schema.observability.metrics import REGISTRY


def _schema_for(records, **kwargs):
    builder = ProgressiveSchemaBuilder()
    builder.process_batch(records)
    return builder.get_schema(**kwargs)


class TestManualSchema:
    """Test the statistics-driven schema build."""

    def test_empty_state(self):
        """Test an empty object schema before any record."""
        schema = SchemaGenerator(SchemaBuilderState()).build()

        assert schema == {"type": "object", "properties": {}, "required": []}

    def test_basic_types(self):
        """Test primitive types map to JSON types."""
        schema = _schema_for([
            {"name": "a", "age": 30, "score": 1.5, "active": True},
            {"name": "b", "age": 31, "score": 2.5, "active": False},
        ])

        props = schema["properties"]
        assert schema["type"] == "object"
        assert props["name"]["type"] == "string"
        assert props["age"]["type"] == "integer"
        assert props["score"]["type"] == "number"
        assert props["active"]["type"] == "boolean"
        assert set(schema["required"]) == {"name", "age", "score", "active"}

    def test_date_and_boolean_strings_are_strings(self):
        """Test date and boolean-string map to string with format hints."""
        schema = _schema_for([
            {"day": "2024-01-15", "at": "2024-01-15T10:30:00", "flag": "true"},
            {"day": "2024-01-16", "at": "2024-01-16T11:00:00", "flag": "false"},
        ])

        props = schema["properties"]
        assert props["day"] == {"type": "string", "format": "date"}
        assert props["at"]["type"] == "string"
        assert props["at"]["format"] == "date-time"
        assert props["flag"]["type"] == "string"

    def test_email_and_uri_formats(self):
        """Test format hints require every non-null value to match."""
        schema = _schema_for([
            {"email": "a@example.com", "site": "https://a.example.com", "mixed": "a@example.com"},
            {"email": "b@example.com", "site": "http://b.example.com", "mixed": "plain"},
        ])

        props = schema["properties"]
        assert props["email"]["format"] == "email"
        assert props["site"]["format"] == "uri"
        assert "format" not in props["mixed"]

    def test_nested_objects(self):
        """Test dotted paths become nested properties."""
        schema = _schema_for([{"venue": {"name": "Hall", "geo": {"city": "Berlin"}}}])

        venue = schema["properties"]["venue"]
        assert venue["type"] == "object"
        assert venue["properties"]["name"]["type"] == "string"
        assert venue["properties"]["geo"]["properties"]["city"]["type"] == "string"
        assert "name" in venue["required"]

    def test_array_items(self):
        """Test []-suffixed paths become items.properties."""
        schema = _schema_for([{"tags": [{"label": "music"}, {"label": "art"}]}])

        tags = schema["properties"]["tags"]
        assert tags["type"] == "array"
        assert tags["items"]["properties"]["label"]["type"] == "string"

    def test_nullable_and_null_only(self):
        """Test null handling."""
        schema = _schema_for([
            {"note": "x", "empty": None},
            {"note": None, "empty": None},
        ])

        props = schema["properties"]
        assert props["note"]["type"] == "string"
        assert props["note"]["nullable"] is True
        assert props["empty"]["type"] == "null"
        assert "nullable" not in props["empty"]

    def test_union_types(self):
        """Test several non-null types produce a union."""
        schema = _schema_for([{"value": 1}, {"value": "one"}, {"value": 2}])

        assert schema["properties"]["value"]["type"] == ["integer", "string"]

    def test_union_order_ignores_frequency(self):
        """Test a union keeps its order when the most frequent type flips."""
        builder = ProgressiveSchemaBuilder()
        builder.process_batch([{"value": 1}, {"value": 2}, {"value": "a"}])
        previous = builder.get_schema()
        builder.process_batch([{"value": "b"}, {"value": "c"}])
        current = builder.get_schema()

        assert previous["properties"]["value"]["type"] == ["integer", "string"]
        assert current["properties"]["value"]["type"] == ["integer", "string"]
        assert builder.compare_with_previous(previous).changes == []

    def test_enum_and_numeric_bounds(self):
        """Test enum values and min/max are attached."""
        statuses = ["active", "inactive", "pending"]
        schema = _schema_for([{"status": statuses[i % 3], "age": 20 + i} for i in range(21)])

        props = schema["properties"]
        assert props["status"]["enum"] == statuses
        assert props["age"]["minimum"] == 20
        assert props["age"]["maximum"] == 40
        assert isinstance(props["age"]["minimum"], int)

    def test_required_threshold(self):
        """Test fields seen in at least 90% of records are required."""
        records = [{"always": 1, "mostly": 1, "often": 1} for _ in range(10)]
        del records[0]["mostly"]
        del records[1]["often"]
        del records[2]["often"]

        schema = _schema_for(records)

        assert "always" in schema["required"]
        assert "mostly" in schema["required"]
        assert "often" not in schema["required"]

    def test_vendor_extensions(self):
        """Test id, geo and type-conflict extensions."""
        schema = _schema_for([
            {"id": 1, "lat": 40.5, "lng": -74.5, "value": 1},
            {"id": 2, "lat": 41.5, "lng": -73.5, "value": "x"},
        ])

        assert "id" in schema["x-id-fields"]
        assert schema["x-geo-fields"]["latitude"] == "lat"
        assert schema["x-geo-fields"]["longitude"] == "lng"
        assert schema["x-type-conflicts"] == ["value"]

    def test_field_mapping_extension(self):
        """Test detected field roles are published without empty roles."""
        schema = _schema_for([
            {"title": "Open Air Cinema", "date": "2024-07-01", "lat": 40.5, "lng": -74.5},
            {"title": "Harbour Festival", "date": "2024-07-02", "lat": 41.5, "lng": -73.5},
        ])

        assert schema["x-field-mappings"] == {
            "title_path": "title",
            "timestamp_path": "date",
            "latitude_path": "lat",
            "longitude_path": "lng",
        }

    def test_no_extensions_without_detections(self):
        """Test extensions are omitted when nothing was detected."""
        schema = _schema_for([{"kind": "a"}, {"kind": "a"}])

        assert "x-id-fields" not in schema
        assert "x-geo-fields" not in schema
        assert "x-type-conflicts" not in schema
        assert "x-field-mappings" not in schema

    def test_idempotent(self):
        """Test two calls without a batch in between are identical."""
        builder = ProgressiveSchemaBuilder()
        builder.process_batch([{"a": 1, "b": {"c": "x"}}, {"a": 2, "b": {"c": None}}])

        assert builder.get_schema() == builder.get_schema()


class TestFindProperty:
    """Test path lookup inside schema documents."""

    def test_nested_and_array_paths(self):
        """Test dotted and []-suffixed lookups."""
        properties = {
            "venue": {"type": "object", "properties": {"name": {"type": "string"}}},
            "tags": {"type": "array", "items": {"type": "object", "properties": {"label": {"type": "string"}}}},
        }

        assert find_property(properties, "venue.name") == {"type": "string"}
        assert find_property(properties, "tags[].label") == {"type": "string"}
        assert find_property(properties, "venue.missing") is None
        assert find_property(properties, "tags.label") is None


class TestGensonSchema:
    """Test the genson inference path."""

    def test_genson_schema_enhanced(self):
        """Test genson output is normalized and enhanced with statistics."""
        statuses = ["active", "inactive", "pending"]
        schema = _schema_for(
            [{"status": statuses[i % 3], "age": 20 + i} for i in range(10)],
            use_inference_engine=True,
        )

        assert "$schema" not in schema
        assert schema["type"] == "object"
        assert list(schema["properties"]) == ["age", "status"]
        assert schema["properties"]["age"]["type"] == "integer"
        assert schema["properties"]["age"]["minimum"] == 20
        assert schema["properties"]["status"]["enum"] == statuses
        assert sorted(schema["required"]) == ["age", "status"]

    def test_genson_failure_falls_back(self, caplog):
        """Test unsupported sample values fall back to the manual build."""
        builder = ProgressiveSchemaBuilder()
        builder.process_batch([{"at": datetime(2024, 1, 15, tzinfo=timezone.utc), "name": "x"}])
        before = REGISTRY.get_sample_value(
            "schema_inference_fallbacks_total", {"error_type": "SchemaGenerationError"}
        ) or 0

        with caplog.at_level("WARNING"):
            schema = builder.get_schema(use_inference_engine=True)

        assert schema == builder.get_schema(use_inference_engine=False)
        assert any("manual schema build" in r.getMessage() for r in caplog.records)
        after = REGISTRY.get_sample_value(
            "schema_inference_fallbacks_total", {"error_type": "SchemaGenerationError"}
        )
        assert after == before + 1

    def test_genson_empty_state(self):
        """Test the genson path returns the empty schema without samples."""
        schema = SchemaGenerator(SchemaBuilderState()).infer_with_genson()

        assert schema == {"type": "object", "properties": {}, "required": []}

    @pytest.mark.parametrize("use_inference_engine", [False, True])
    def test_generate_dispatch(self, use_inference_engine):
        """Test both paths agree on top-level property names."""
        schema = _schema_for([{"b": 1, "a": "x"}], use_inference_engine=use_inference_engine)

        assert set(schema["properties"]) == {"a", "b"}
