"""
Schema generation from aggregated field statistics.

The manual path rebuilds a JSON-Schema-shaped document directly from the
statistics. The optional genson path infers structure from the buffered
raw samples and is then enhanced with the same statistics; any failure
there falls back to the manual path.
"""

import json
from typing import Any

from genson import SchemaBuilder as GensonSchemaBuilder
from genson.schema.node import SchemaGenerationError

from progressive_schema.core.models import FieldStatistics, SchemaBuilderState
from progressive_schema.observability.logger import get_logger
from progressive_schema.observability.metrics import inference_fallbacks_total

logger = get_logger(__name__)

# Fields seen in at least this share of records are required
REQUIRED_THRESHOLD = 0.9

JSON_TYPE_MAP = {
    "string": "string",
    "number": "number",
    "integer": "integer",
    "boolean": "boolean",
    "object": "object",
    "array": "array",
    "null": "null",
    "date": "string",
    "boolean-string": "string",
}

NUMERIC_TYPES = ("integer", "number")


def empty_schema() -> dict[str, Any]:
    """Document returned before any record has been buffered."""
    return {"type": "object", "properties": {}, "required": []}


def _json_number(value: float, is_integer: bool) -> float | int:
    if is_integer and value == value and value not in (float("inf"), float("-inf")):
        return int(value)
    return value


def _format_hint(stats: FieldStatistics) -> str | None:
    non_null = stats.occurrences - stats.null_count
    if non_null <= 0:
        return None

    formats = stats.formats
    if formats.get("date-time", 0) == non_null:
        return "date-time"
    if formats.get("date", 0) == non_null:
        return "date"
    if formats.get("email", 0) == non_null:
        return "email"
    if formats.get("url", 0) == non_null:
        return "uri"
    if stats.type_distribution.get("date", 0) == non_null:
        return "date-time"
    return None


def build_property_schema(stats: FieldStatistics) -> dict[str, Any]:
    """
    JSON Schema fragment for one field.

    The dominant non-null type becomes the type; several non-null types make
    an alphabetically ordered union. Enum values, numeric bounds and format
    hints are attached.
    """
    observed = [value_type for value_type, _ in stats.non_null_types()]
    mapped: list[str] = []
    for value_type in observed:
        json_type = JSON_TYPE_MAP.get(value_type, "string")
        if json_type not in mapped:
            mapped.append(json_type)

    mapped.sort()

    schema: dict[str, Any] = {}
    if not mapped:
        schema["type"] = "null"
    elif len(mapped) == 1:
        schema["type"] = mapped[0]
    else:
        schema["type"] = mapped

    if mapped and stats.null_count > 0:
        schema["nullable"] = True

    _apply_stats(schema, stats)
    return schema


def _apply_stats(prop: dict[str, Any], stats: FieldStatistics) -> None:
    """Attach enum, numeric bounds and format hints from statistics."""
    format_hint = _format_hint(stats)
    if format_hint:
        prop["format"] = format_hint

    if stats.is_enum_candidate and stats.enum_values:
        prop["enum"] = [enum_value.value for enum_value in stats.enum_values]

    numeric = stats.numeric_stats
    if numeric is not None and any(stats.type_distribution.get(t, 0) for t in NUMERIC_TYPES):
        prop["minimum"] = _json_number(numeric.min, numeric.is_integer)
        prop["maximum"] = _json_number(numeric.max, numeric.is_integer)


def find_property(properties: dict[str, Any], path: str) -> dict[str, Any] | None:
    """Locate the schema fragment for a dotted / []-suffixed path."""
    current = properties
    parts = path.split(".")
    for index, part in enumerate(parts):
        is_array = part.endswith("[]")
        name = part[:-2] if is_array else part
        prop = current.get(name) if isinstance(current, dict) else None
        if not isinstance(prop, dict):
            return None
        if index == len(parts) - 1:
            return prop
        if is_array:
            items = prop.get("items")
            if not isinstance(items, dict):
                return None
            current = items.get("properties")
        else:
            current = prop.get("properties")
    return None


class SchemaGenerator:
    """
    Builds schema documents from a builder state.

    The generator only reads the state; it never mutates it.
    """

    def __init__(self, state: SchemaBuilderState):
        """
        Initialize schema generator.

        Args:
            state: Aggregated builder state
        """
        self.state = state

    def generate(self, use_inference_engine: bool = False) -> dict[str, Any]:
        """
        Produce the schema document.

        Args:
            use_inference_engine: Infer structure with genson instead of statistics

        Returns:
            JSON-Schema-shaped dict with type, properties and required
        """
        if not self.state.data_samples:
            return empty_schema()

        if use_inference_engine:
            return self.infer_with_genson()
        return self.build()

    # =======================
    # MANUAL PATH
    # =======================

    def build(self) -> dict[str, Any]:
        """Build the document directly from field statistics."""
        if not self.state.data_samples:
            return empty_schema()

        properties: dict[str, Any] = {}
        required: list[str] = []

        for path, stats in self.state.field_stats.items():
            self._place_field(properties, required, path, stats)

        schema = {"type": "object", "properties": properties, "required": required}
        self._add_extensions(schema)
        return schema

    def _is_required(self, stats: FieldStatistics) -> bool:
        return stats.occurrences >= self.state.record_count * REQUIRED_THRESHOLD

    def _place_field(
        self,
        properties: dict[str, Any],
        required: list[str],
        path: str,
        stats: FieldStatistics,
    ) -> None:
        parts = [part for part in path.split(".") if part]
        container, container_required = properties, required

        for index, part in enumerate(parts):
            if index == len(parts) - 1:
                existing = container.get(part, {})
                prop = build_property_schema(stats)
                for nested_key in ("properties", "items", "required"):
                    if nested_key in existing:
                        prop[nested_key] = existing[nested_key]
                container[part] = prop
                if self._is_required(stats) and part not in container_required:
                    container_required.append(part)
            elif part.endswith("[]"):
                array_prop = container.setdefault(part[:-2], {"type": "array"})
                items = array_prop.setdefault("items", {"type": "object"})
                container = items.setdefault("properties", {})
                container_required = items.setdefault("required", [])
            else:
                object_prop = container.setdefault(part, {"type": "object"})
                container = object_prop.setdefault("properties", {})
                container_required = object_prop.setdefault("required", [])

    # =======================
    # GENSON PATH
    # =======================

    def infer_with_genson(self) -> dict[str, Any]:
        """
        Infer structure from buffered samples with genson, then enhance.

        Falls back to build() when genson cannot handle the samples or its
        output cannot be parsed.
        """
        if not self.state.data_samples:
            return empty_schema()

        try:
            builder = GensonSchemaBuilder()
            for record in self.state.data_samples:
                builder.add_object(record)
            schema = self._normalize(json.loads(builder.to_json()))
        except (SchemaGenerationError, TypeError, ValueError) as e:
            logger.warning(
                f"Schema inference engine failed, using manual schema build: {e}",
                extra={"error_type": type(e).__name__, "sample_count": len(self.state.data_samples)},
            )
            inference_fallbacks_total.labels(error_type=type(e).__name__).inc()
            return self.build()

        self.enhance(schema)
        return schema

    def _normalize(self, schema: Any) -> dict[str, Any]:
        """Bring inference output to the {type, properties, required} shape."""
        if not isinstance(schema, dict):
            raise ValueError(f"Inference output is not an object: {type(schema).__name__}")

        schema.pop("$schema", None)

        ref = schema.get("$ref")
        definitions = schema.get("definitions") or schema.get("$defs")
        if isinstance(ref, str) and isinstance(definitions, dict):
            target = definitions.get(ref.rsplit("/", 1)[-1])
            if isinstance(target, dict):
                schema = target

        if schema.get("type") not in (None, "object"):
            raise ValueError(f"Inference output is not an object schema: {schema.get('type')}")

        schema["type"] = "object"
        properties = schema.get("properties") or {}
        schema["properties"] = {key: properties[key] for key in sorted(properties)}
        schema.setdefault("required", [])
        return schema

    def enhance(self, schema: dict[str, Any]) -> None:
        """Attach statistics and detected patterns to an externally inferred schema."""
        properties = schema.get("properties") or {}
        for path, stats in self.state.field_stats.items():
            prop = find_property(properties, path)
            if prop is not None:
                _apply_stats(prop, stats)
        self._add_extensions(schema)

    def _add_extensions(self, schema: dict[str, Any]) -> None:
        if self.state.detected_id_fields:
            schema["x-id-fields"] = list(self.state.detected_id_fields)

        geo = self.state.detected_geo_fields
        if geo.has_coordinates:
            schema["x-geo-fields"] = geo.model_dump(exclude_none=True)

        if self.state.type_conflicts:
            schema["x-type-conflicts"] = [conflict.path for conflict in self.state.type_conflicts]

        mappings = self.state.field_mappings
        if mappings.has_mappings:
            schema["x-field-mappings"] = mappings.model_dump(exclude_none=True)
