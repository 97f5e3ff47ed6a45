"""Unit tests for rename detection."""

import pytest

from progressive_schema.core.schema import compare_schemas, detect_transforms
from progressive_schema.core.schema.transforms import (
    levenshtein_distance,
    name_similarity,
    types_compatible,
)


def _schema(properties, required=None):
    return {"type": "object", "properties": properties, "required": required or []}


def _suggest(previous, current):
    comparison = compare_schemas(previous, current)
    return detect_transforms(previous, current, comparison.changes)


STRING = {"type": "string"}


class TestLevenshtein:
    """Test edit distance."""

    @pytest.mark.parametrize("a,b,expected", [
        ("", "", 0),
        ("abc", "", 3),
        ("kitten", "sitting", 3),
        ("date", "start_date", 6),
        ("flaw", "lawn", 2),
        ("same", "same", 0),
    ])
    def test_distance(self, a, b, expected):
        """Test known distances in both argument orders."""
        assert levenshtein_distance(a, b) == expected
        assert levenshtein_distance(b, a) == expected

    def test_name_similarity_case_insensitive(self):
        """Test names are compared lower-cased on their leaf segment."""
        assert name_similarity("Date", "date") == 1.0
        assert name_similarity("venue.Name", "name") == 1.0


class TestTypeCompatibility:
    """Test type compatibility rules."""

    def test_rules(self):
        """Test identical, nullable-equivalent and date/string pairs."""
        assert types_compatible({"type": "string"}, {"type": "string"})
        assert types_compatible({"type": "string"}, {"type": ["string", "null"]})
        assert types_compatible({"type": "date"}, {"type": "string"})
        assert not types_compatible({"type": "number"}, {"type": "object"})
        assert not types_compatible({}, {"type": "string"})


class TestDetectTransforms:
    """Test rename suggestions between schema generations."""

    def test_simple_rename(self):
        """Test date -> start_date scores at least 70."""
        previous = _schema({"date": STRING, "title": STRING}, ["date", "title"])
        current = _schema({"start_date": STRING, "title": STRING}, ["start_date", "title"])

        suggestions = _suggest(previous, current)

        assert len(suggestions) == 1
        suggestion = suggestions[0]
        assert suggestion.type == "rename"
        assert suggestion.from_path == "start_date"
        assert suggestion.to_path == "date"
        assert suggestion.confidence >= 70

    @pytest.mark.parametrize("old,new", [
        ("time", "start_time"),
        ("date", "end_date"),
        ("author", "author_name"),
        ("title", "event_title"),
        ("sku", "item_sku"),
        ("venue", "venue_id"),
    ])
    def test_common_patterns(self, old, new):
        """Test prefix and suffix patterns produce a suggestion."""
        suggestions = _suggest(_schema({old: STRING}), _schema({new: STRING}))

        assert len(suggestions) == 1
        assert suggestions[0].from_path == new
        assert suggestions[0].to_path == old

    def test_different_names(self):
        """Test unrelated names are not suggested."""
        assert _suggest(_schema({"author": STRING}), _schema({"location": STRING})) == []

    def test_incompatible_types(self):
        """Test a type mismatch keeps the score below the threshold."""
        suggestions = _suggest(
            _schema({"count": {"type": "number"}}),
            _schema({"count_items": {"type": "object"}}),
        )

        assert [s for s in suggestions if s.confidence >= 70] == []

    def test_multiple_renames(self):
        """Test several renames in one diff."""
        previous = _schema({"date": STRING, "author": STRING, "title": STRING})
        current = _schema({"start_date": STRING, "creator": STRING, "event_title": STRING})

        suggestions = _suggest(previous, current)

        by_target = {s.to_path: s for s in suggestions}
        assert by_target["date"].from_path == "start_date"
        assert by_target["title"].from_path == "event_title"
        assert "author" not in by_target

    def test_sorted_by_confidence(self):
        """Test suggestions are ordered highest confidence first."""
        previous = _schema({"date": STRING, "title": STRING})
        current = _schema({"Title": STRING, "start_date": STRING})

        suggestions = _suggest(previous, current)

        confidences = [s.confidence for s in suggestions]
        assert confidences == sorted(confidences, reverse=True)
        assert suggestions[0].to_path == "title"

    def test_no_changes(self):
        """Test identical schemas give no suggestions."""
        schema = _schema({"title": STRING, "date": STRING})

        assert _suggest(schema, schema) == []

    def test_additions_only(self):
        """Test new fields without removals give no suggestions."""
        assert _suggest(_schema({"title": STRING}), _schema({"title": STRING, "date": STRING})) == []

    def test_position_bonus(self):
        """Test a rename at the same position scores above 70."""
        previous = _schema({"id": STRING, "date": STRING, "title": STRING})
        current = _schema({"id": STRING, "start_date": STRING, "title": STRING})

        suggestion = next(s for s in _suggest(previous, current) if s.to_path == "date")

        assert suggestion.confidence > 70

    def test_reason_text(self):
        """Test the reason lists the scoring factors."""
        suggestion = _suggest(_schema({"date": STRING}), _schema({"start_date": STRING}))[0]

        assert isinstance(suggestion.reason, str)
        assert "compatible types" in suggestion.reason
        assert "naming pattern" in suggestion.reason

    def test_case_only_rename(self):
        """Test a case-only change scores at least 80."""
        suggestions = _suggest(_schema({"Date": STRING}), _schema({"date": STRING}))

        assert len(suggestions) == 1
        assert suggestions[0].confidence >= 80

    def test_serialized_field_names(self):
        """Test suggestions serialize with from/to keys."""
        suggestion = _suggest(_schema({"date": STRING}), _schema({"start_date": STRING}))[0]

        dumped = suggestion.model_dump(by_alias=True)
        assert dumped["from"] == "start_date"
        assert dumped["to"] == "date"
