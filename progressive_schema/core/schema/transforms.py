"""
Rename detection between two schema generations.

Every removed field is paired with every added field and scored on name
similarity, type compatibility, common naming patterns and position in
the property order. Pairs scoring at least RENAME_THRESHOLD are suggested.
"""

from typing import Any

from progressive_schema.core.models import SchemaChange, TransformSuggestion

RENAME_THRESHOLD = 70

NAME_SIMILARITY_POINTS = 40
TYPE_COMPATIBILITY_POINTS = 30
COMMON_PATTERN_POINTS = 20
# Position distance -> points
POSITION_POINTS = {0: 10, 1: 7, 2: 4}

COMMON_PREFIXES = ("start_", "end_", "event_", "item_")
COMMON_SUFFIXES = ("_name", "_id")


def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance (insertions, deletions, substitutions) via Wagner-Fischer."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    if not s2:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row
    return previous_row[-1]


def _leaf(path: str) -> str:
    return path.split(".")[-1].lower()


def name_similarity(old_name: str, new_name: str) -> float:
    """0-1 similarity of two leaf names, case-insensitive."""
    a, b = _leaf(old_name), _leaf(new_name)
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a, b)) / longest


def _type_set(prop: Any) -> set[str]:
    if not isinstance(prop, dict):
        return set()
    prop_type = prop.get("type")
    if isinstance(prop_type, list):
        return {str(t) for t in prop_type}
    if prop_type:
        return {str(prop_type)}
    return set()


def types_compatible(old_prop: Any, new_prop: Any) -> bool:
    """Identical, equal once nullability is ignored, or a date/string pair."""
    old_types, new_types = _type_set(old_prop), _type_set(new_prop)
    if not old_types or not new_types:
        return False
    if old_types == new_types:
        return True

    old_non_null, new_non_null = old_types - {"null"}, new_types - {"null"}
    if old_non_null and old_non_null == new_non_null:
        return True
    return old_non_null | new_non_null == {"date", "string"}


def _has_common_pattern(old_name: str, new_name: str) -> bool:
    a, b = _leaf(old_name), _leaf(new_name)
    for shorter, longer in ((a, b), (b, a)):
        if any(longer == prefix + shorter for prefix in COMMON_PREFIXES):
            return True
        if any(longer == shorter + suffix for suffix in COMMON_SUFFIXES):
            return True
    return False


def _position_points(old_index: int, new_index: int) -> int:
    if old_index < 0 or new_index < 0:
        return 0
    return POSITION_POINTS.get(abs(old_index - new_index), 0)


def score_rename(
    old_path: str,
    new_path: str,
    previous: dict[str, Any],
    current: dict[str, Any],
) -> tuple[float, list[str]]:
    """
    Score one removed/added pair.

    Returns:
        (score out of 100, reason fragments)
    """
    old_props = previous.get("properties") or {}
    new_props = current.get("properties") or {}
    reasons = []

    similarity = name_similarity(old_path, new_path)
    score = NAME_SIMILARITY_POINTS * similarity
    if similarity > 0:
        reasons.append(f"name similarity {similarity:.0%}")

    if types_compatible(old_props.get(old_path), new_props.get(new_path)):
        score += TYPE_COMPATIBILITY_POINTS
        reasons.append("compatible types")

    if _has_common_pattern(old_path, new_path):
        score += COMMON_PATTERN_POINTS
        reasons.append("common naming pattern")

    old_keys, new_keys = list(old_props), list(new_props)
    position = _position_points(
        old_keys.index(old_path) if old_path in old_props else -1,
        new_keys.index(new_path) if new_path in new_props else -1,
    )
    if position:
        score += position
        reasons.append("similar position")

    return score, reasons


def detect_transforms(
    previous: dict[str, Any],
    current: dict[str, Any],
    changes: list[SchemaChange],
) -> list[TransformSuggestion]:
    """
    Suggest renames from the removed/added fields of a comparison.

    Args:
        previous: Earlier schema document
        current: Newer schema document
        changes: Changes returned by compare_schemas for the same pair

    Returns:
        Suggestions sorted by confidence, highest first
    """
    removed = [change.path for change in changes if change.type == "removed_field"]
    added = [change.path for change in changes if change.type == "new_field"]

    suggestions = []
    for old_path in removed:
        for new_path in added:
            score, reasons = score_rename(old_path, new_path, previous, current)
            if score < RENAME_THRESHOLD:
                continue
            suggestions.append(TransformSuggestion(
                from_path=new_path,
                to_path=old_path,
                confidence=min(100, round(score)),
                reason=", ".join(reasons).capitalize(),
            ))

    suggestions.sort(key=lambda suggestion: suggestion.confidence, reverse=True)
    return suggestions
