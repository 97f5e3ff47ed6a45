"""
Field statistics tracking for progressive schema inference.

Functions that create, update and merge the per-field statistics the
builder keeps for every field path it encounters.
"""

import math
import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from progressive_schema.core.models import EnumValue, FieldStatistics, NumericStats
from progressive_schema.core.models.field_statistics import utc_now

NULL_TYPES = ("null", "undefined")

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}:\d{2})?$")
SLASH_DATE_PATTERN = re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$")

URL_PATTERN = re.compile(r"^https?://\S+")
DATE_TIME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")
DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
NUMERIC_STRING_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")


def create_field_stats(path: str = "") -> FieldStatistics:
    """
    Create zeroed statistics for a field path.

    Args:
        path: Field path; its depth is the number of "." separators

    Returns:
        New FieldStatistics
    """
    now = utc_now()
    return FieldStatistics(
        path=path,
        first_seen=now,
        last_seen=now,
        depth=path.count("."),
    )


def is_date_string(value: str) -> bool:
    """Check if a string looks like an ISO or slash-separated date."""
    if ISO_DATE_PATTERN.match(value):
        try:
            datetime.fromisoformat(value)
        except ValueError:
            return False
        return True

    return SLASH_DATE_PATTERN.match(value) is not None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def get_value_type(value: Any) -> str:
    """
    Classify a value into one of the tracked type names.

    Returns:
        null, integer, number, boolean, string, boolean-string, date, array or object
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        if isinstance(value, int):
            return "integer"
        as_float = float(value)
        if math.isfinite(as_float) and as_float.is_integer():
            return "integer"
        return "number"
    if isinstance(value, str):
        if is_date_string(value):
            return "date"
        if value in ("true", "false"):
            return "boolean-string"
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, (datetime, date)):
        return "date"
    if isinstance(value, Mapping):
        return "object"
    return "object"


def _increment(counter: dict[str, int], key: str) -> None:
    counter[key] = counter.get(key, 0) + 1


def _update_numeric_stats(stats: FieldStatistics, value: float, occurrences: int) -> None:
    if stats.numeric_stats is None:
        stats.numeric_stats = NumericStats(
            min=value,
            max=value,
            avg=value,
            is_integer=float(value).is_integer(),
        )
        return

    numeric = stats.numeric_stats
    numeric.min = min(numeric.min, value)
    numeric.max = max(numeric.max, value)
    # Incremental mean over all occurrences (nulls included in n)
    numeric.avg = (numeric.avg * (occurrences - 1) + value) / occurrences
    numeric.is_integer = numeric.is_integer and float(value).is_integer()


def is_email(value: str) -> bool:
    """Single @, non-empty local and domain parts, dotted domain, no whitespace."""
    if value.count("@") != 1:
        return False
    local, domain = value.split("@")
    if not local or not domain or "." not in domain:
        return False
    return not any(ch.isspace() for ch in value)


def _detect_string_formats(stats: FieldStatistics, value: str) -> None:
    if is_email(value):
        _increment(stats.formats, "email")
    if URL_PATTERN.match(value):
        _increment(stats.formats, "url")
    if DATE_TIME_PATTERN.match(value):
        _increment(stats.formats, "date-time")
    if DATE_ONLY_PATTERN.match(value):
        _increment(stats.formats, "date")
    if NUMERIC_STRING_PATTERN.match(value):
        _increment(stats.formats, "numeric")


def sample_key(value: Any) -> tuple[str, Any] | None:
    """
    Identity key for unique-sample tracking, or None for non-primitive values.

    Booleans are kept apart from numbers (True == 1 in Python), while 1 and
    1.0 collapse to one sample.
    """
    if isinstance(value, bool):
        return ("bool", value)
    if _is_number(value):
        as_float = float(value)
        if math.isnan(as_float):
            return None
        return ("num", as_float)
    if isinstance(value, str):
        return ("str", value)
    return None


def find_sample(samples: list[Any], value: Any) -> int:
    """Index of value in a unique-sample list, or -1."""
    key = sample_key(value)
    if key is None:
        return -1
    for index, sample in enumerate(samples):
        if sample_key(sample) == key:
            return index
    return -1


def _track_unique_sample(stats: FieldStatistics, value: Any, max_unique_values: int) -> None:
    if sample_key(value) is None:
        return

    index = find_sample(stats.unique_samples, value)
    if index >= 0:
        stats.sample_counts[index] += 1
    elif len(stats.unique_samples) < max_unique_values:
        stats.unique_samples.append(value)
        stats.sample_counts.append(1)


def update_field_stats(stats: FieldStatistics, value: Any, max_unique_values: int) -> None:
    """
    Update a field's statistics with one observed value.

    Args:
        stats: Statistics to mutate
        value: Observed value
        max_unique_values: Cap for the unique-sample list
    """
    stats.occurrences += 1
    stats.last_seen = utc_now()

    value_type = get_value_type(value)
    _increment(stats.type_distribution, value_type)

    if value_type in NULL_TYPES:
        stats.null_count += 1
        return

    if _is_number(value) and not math.isnan(float(value)):
        _update_numeric_stats(stats, float(value), stats.occurrences)

    if isinstance(value, str):
        _detect_string_formats(stats, value)

    _track_unique_sample(stats, value, max_unique_values)
    stats.unique_values = len(stats.unique_samples)


def _merge_distributions(existing: dict[str, int], incoming: dict[str, int]) -> dict[str, int]:
    merged = dict(existing)
    for key, count in incoming.items():
        merged[key] = merged.get(key, 0) + count
    return merged


def _merge_numeric_stats(
    existing: FieldStatistics,
    incoming: FieldStatistics,
    total_occurrences: int,
) -> NumericStats | None:
    a, b = existing.numeric_stats, incoming.numeric_stats
    if a is None or b is None:
        chosen = a or b
        return chosen.model_copy() if chosen else None

    return NumericStats(
        min=min(a.min, b.min),
        max=max(a.max, b.max),
        avg=(a.avg * existing.occurrences + b.avg * incoming.occurrences) / total_occurrences,
        is_integer=a.is_integer and b.is_integer,
    )


def _merge_enum_values(
    existing: list[EnumValue] | None,
    incoming: list[EnumValue] | None,
    total_occurrences: int,
) -> list[EnumValue] | None:
    if existing is None and incoming is None:
        return None

    values: list[Any] = []
    counts: list[int] = []
    for item in (existing or []) + (incoming or []):
        index = find_sample(values, item.value)
        if index >= 0:
            counts[index] += item.count
        else:
            values.append(item.value)
            counts.append(item.count)

    return [
        EnumValue(
            value=value,
            count=count,
            percent=(count / total_occurrences) * 100 if total_occurrences else 0.0,
        )
        for value, count in zip(values, counts)
    ]


def merge_field_stats(
    existing: FieldStatistics,
    incoming: FieldStatistics,
    max_unique_values: int = 100,
) -> FieldStatistics:
    """
    Combine statistics computed over two disjoint record sets.

    Args:
        existing: Statistics from the earlier records
        incoming: Statistics from the later records
        max_unique_values: Cap re-applied to the merged unique samples

    Returns:
        New merged FieldStatistics (inputs are left untouched)
    """
    occurrences = existing.occurrences + incoming.occurrences

    samples: list[Any] = []
    sample_counts: list[int] = []
    for source in (existing, incoming):
        for value, count in zip(source.unique_samples, source.sample_counts):
            index = find_sample(samples, value)
            if index >= 0:
                sample_counts[index] += count
            elif len(samples) < max_unique_values:
                samples.append(value)
                sample_counts.append(count)

    return FieldStatistics(
        path=existing.path,
        occurrences=occurrences,
        null_count=existing.null_count + incoming.null_count,
        unique_values=len(samples),
        unique_samples=samples,
        sample_counts=sample_counts,
        type_distribution=_merge_distributions(existing.type_distribution, incoming.type_distribution),
        formats=_merge_distributions(existing.formats, incoming.formats),
        numeric_stats=_merge_numeric_stats(existing, incoming, occurrences),
        is_enum_candidate=existing.is_enum_candidate or incoming.is_enum_candidate,
        enum_values=_merge_enum_values(existing.enum_values, incoming.enum_values, occurrences),
        geo_hints=existing.geo_hints or incoming.geo_hints,
        first_seen=min(existing.first_seen, incoming.first_seen),
        last_seen=max(existing.last_seen, incoming.last_seen),
        depth=existing.depth,
    )
