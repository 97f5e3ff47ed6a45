"""
Pattern detection over aggregated field statistics.

Passes re-run after every batch: identifier fields, geographic coordinate
fields, semantic field roles (title, description, timestamp, location) and
enum candidates. None of them raise on ambiguous data; uncertainty shows
up as a low confidence or as no detection at all.
"""

import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from progressive_schema.core.config import BuilderConfig
from progressive_schema.core.models import (
    DetectedGeoFields,
    EnumValue,
    FieldMappings,
    FieldStatistics,
    GeoHints,
    SchemaBuilderState,
)
from progressive_schema.core.schema.coordinates import (
    FORMAT_MATCH_THRESHOLD,
    LATITUDE_BOUNDS,
    LONGITUDE_BOUNDS,
    detect_combined_format,
    in_bounds,
    parse_coordinate,
)

ID_NAME_PATTERN = re.compile(r"^(?:.*_)?(?:id|uuid|guid|key)$", re.IGNORECASE)
ID_VALUE_TYPES = ("integer", "number", "string")

# Ordered by specificity: earlier patterns score higher
LATITUDE_PATTERNS = [
    re.compile(r"^lat(itude)?$", re.IGNORECASE),
    re.compile(r"^lat[_\s.-]?deg(rees)?$", re.IGNORECASE),
    re.compile(r"^(geo|location|loc|coord|decimal|wgs84)[_\s.-]?lat(itude)?$", re.IGNORECASE),
    re.compile(r"^latitude[_\s.-]?decimal$", re.IGNORECASE),
    re.compile(r"^y[_\s.-]?coord(inate)?$", re.IGNORECASE),
    re.compile(r"^breite(ngrad)?$", re.IGNORECASE),
]

LONGITUDE_PATTERNS = [
    re.compile(r"^lon(g|gitude)?$", re.IGNORECASE),
    re.compile(r"^lng$", re.IGNORECASE),
    re.compile(r"^lon(g)?[_\s.-]?deg(rees)?$", re.IGNORECASE),
    re.compile(r"^(geo|location|loc|coord|decimal|wgs84)[_\s.-]?(lon(g|gitude)?|lng)$", re.IGNORECASE),
    re.compile(r"^longitude[_\s.-]?decimal$", re.IGNORECASE),
    re.compile(r"^x[_\s.-]?coord(inate)?$", re.IGNORECASE),
    re.compile(r"^l(ä|ae)nge(ngrad)?$", re.IGNORECASE),
]

COMBINED_COORDINATE_PATTERN = re.compile(
    r"^(coord(inate)?s?|lat[_\s.-]?(lon|lng|long)|(lng|lon)[_\s.-]?lat|latlng|lnglat|"
    r"location|geo|geo[_\s.-]?(location|point)|geolocation|position|point)$",
    re.IGNORECASE,
)

ADDRESS_PATTERN = re.compile(
    r"^(address|addr|location|place|venue|street|city|state|zip|postal|country)",
    re.IGNORECASE,
)

# Confidence weights for a single coordinate candidate
NAME_WEIGHT = 0.4
TYPE_WEIGHT = 0.3
CONSISTENCY_WEIGHT = 0.2
COMPLETENESS_WEIGHT = 0.1

MAX_COORDINATE_SAMPLES = 10
STRING_ENUM_TYPES = ("string", "boolean-string")


# =======================
# IDENTIFIERS
# =======================

def _is_high_cardinality(stats: FieldStatistics) -> bool:
    return (
        stats.occurrences > 1
        and stats.unique_values == stats.occurrences
        and stats.dominant_type() in ID_VALUE_TYPES
    )


def detect_id_fields(state: SchemaBuilderState) -> list[str]:
    """
    Find fields that look like record identifiers.

    A field qualifies when its leaf name is identifier-like (id, _id, uuid,
    guid, key, *_id, *_key) or when every observed value was distinct.
    """
    detected = []
    for path, stats in state.field_stats.items():
        if ID_NAME_PATTERN.match(stats.leaf_name) or _is_high_cardinality(stats):
            detected.append(path)
    return detected


# =======================
# GEO FIELDS
# =======================

def _name_match_index(name: str, patterns: list[re.Pattern]) -> int:
    for index, pattern in enumerate(patterns):
        if pattern.match(name):
            return index
    return -1


def _has_numeric_type(stats: FieldStatistics) -> bool:
    distribution = stats.type_distribution
    return distribution.get("integer", 0) > 0 or distribution.get("number", 0) > 0


def _string_coordinate_ratio(stats: FieldStatistics, bounds: tuple[float, float]) -> float | None:
    """Share of up to 10 sampled strings that parse into bounds, None without samples."""
    samples = [
        sample for sample in stats.unique_samples
        if isinstance(sample, str) and sample.strip()
    ][:MAX_COORDINATE_SAMPLES]
    if not samples:
        return None

    valid = 0
    for sample in samples:
        parsed = parse_coordinate(sample)
        if parsed is not None and in_bounds(parsed, bounds):
            valid += 1
    return valid / len(samples)


def _type_validity(stats: FieldStatistics, bounds: tuple[float, float]) -> float:
    """0-1 validity of the field's values as coordinates within bounds."""
    if _has_numeric_type(stats) and stats.numeric_stats is not None:
        numeric = stats.numeric_stats
        return 1.0 if in_bounds(numeric.min, bounds) and in_bounds(numeric.max, bounds) else 0.0

    if stats.type_distribution.get("string", 0) > 0:
        return _string_coordinate_ratio(stats, bounds) or 0.0

    return 0.0


def _is_valid_coordinate_field(stats: FieldStatistics, bounds: tuple[float, float]) -> bool:
    if _has_numeric_type(stats) and stats.numeric_stats is not None:
        return _type_validity(stats, bounds) == 1.0
    return _type_validity(stats, bounds) >= FORMAT_MATCH_THRESHOLD


def coordinate_confidence(
    stats: FieldStatistics,
    patterns: list[re.Pattern],
    bounds: tuple[float, float],
) -> float:
    """
    Confidence (0-1) that a field holds one coordinate axis.

    Weighted sum of name specificity (0.4), type/range validity (0.3),
    dominant-type consistency (0.2) and non-null completeness (0.1).
    """
    index = _name_match_index(stats.leaf_name, patterns)
    name_score = 0.0 if index < 0 else 1 - index / len(patterns)

    total = sum(stats.type_distribution.values())
    consistency = max(stats.type_distribution.values()) / total if total else 0.0
    completeness = (
        (stats.occurrences - stats.null_count) / stats.occurrences if stats.occurrences else 0.0
    )

    return (
        NAME_WEIGHT * name_score
        + TYPE_WEIGHT * _type_validity(stats, bounds)
        + CONSISTENCY_WEIGHT * consistency
        + COMPLETENESS_WEIGHT * completeness
    )


def _find_coordinate_field(
    state: SchemaBuilderState,
    patterns: list[re.Pattern],
    bounds: tuple[float, float],
) -> tuple[str, float] | None:
    best: tuple[str, float] | None = None
    for path, stats in state.field_stats.items():
        if _name_match_index(stats.leaf_name, patterns) < 0:
            continue
        if not _is_valid_coordinate_field(stats, bounds):
            continue
        confidence = coordinate_confidence(stats, patterns, bounds)
        if best is None or confidence > best[1]:
            best = (path, confidence)
    return best


def _values_at_path(record: Any, parts: list[str]) -> list[Any]:
    """Resolve a field path in a raw record; "[]" parts descend into the first item."""
    current = record
    for part in parts:
        is_array = part.endswith("[]")
        key = part[:-2] if is_array else part
        if not isinstance(current, Mapping) or key not in current:
            return []
        current = current[key]
        if is_array:
            if not isinstance(current, list) or not current:
                return []
            current = current[0]
    return [current]


def _coordinate_samples(state: SchemaBuilderState, path: str, stats: FieldStatistics) -> list[Any]:
    samples = [sample for sample in stats.unique_samples if isinstance(sample, str) and sample.strip()]
    if stats.type_distribution.get("array", 0) > 0:
        parts = path.split(".")
        for record in state.data_samples:
            samples.extend(value for value in _values_at_path(record, parts) if value is not None)
    return samples[:MAX_COORDINATE_SAMPLES]


def _find_combined_field(state: SchemaBuilderState) -> tuple[str, str, float] | None:
    for path, stats in state.field_stats.items():
        if not COMBINED_COORDINATE_PATTERN.match(stats.leaf_name):
            continue
        samples = _coordinate_samples(state, path, stats)
        if not samples:
            continue
        detected = detect_combined_format(samples)
        if detected is not None:
            return path, detected.format, detected.confidence
    return None


def _find_location_field(state: SchemaBuilderState) -> str | None:
    for path, stats in state.field_stats.items():
        if ADDRESS_PATTERN.match(stats.leaf_name) and stats.type_distribution.get("string", 0) > 0:
            return path
    return None


def _mark_geo_hints(state: SchemaBuilderState, latitude: str | None, longitude: str | None) -> None:
    for path, stats in state.field_stats.items():
        if path == latitude or path == longitude:
            stats.geo_hints = GeoHints(
                is_latitude=path == latitude,
                is_longitude=path == longitude,
                field_name_pattern=stats.leaf_name,
                value_range=True,
            )
        else:
            stats.geo_hints = None


def detect_geo_fields(state: SchemaBuilderState) -> DetectedGeoFields:
    """
    Detect latitude/longitude fields, a combined coordinate field and a
    free-text location field.

    Separate lat/lng fields win over a combined field; a lone coordinate
    axis is reported at half confidence. The location field never adds
    confidence on its own.
    """
    latitude = _find_coordinate_field(state, LATITUDE_PATTERNS, LATITUDE_BOUNDS)
    longitude = _find_coordinate_field(state, LONGITUDE_PATTERNS, LONGITUDE_BOUNDS)
    location_field = _find_location_field(state)
    combined = None if latitude and longitude else _find_combined_field(state)

    if latitude and longitude:
        result = DetectedGeoFields(
            latitude=latitude[0],
            longitude=longitude[0],
            location_field=location_field,
            confidence=min(1.0, (latitude[1] + longitude[1]) / 2),
        )
    elif combined is not None:
        path, coordinate_format, confidence = combined
        result = DetectedGeoFields(
            combined_field=path,
            combined_format=coordinate_format,
            location_field=location_field,
            confidence=min(1.0, confidence),
        )
    elif latitude or longitude:
        single = latitude or longitude
        result = DetectedGeoFields(
            latitude=latitude[0] if latitude else None,
            longitude=longitude[0] if longitude else None,
            location_field=location_field,
            confidence=min(1.0, single[1] * 0.5),
        )
    else:
        result = DetectedGeoFields(location_field=location_field)

    _mark_geo_hints(state, result.latitude, result.longitude)
    return result


# =======================
# FIELD ROLES
# =======================

# Leaf-name patterns per role and language, most specific first
FIELD_ROLE_PATTERNS = {
    "title": {
        "eng": [r"^title$", r"^name$", r"^event.*name$", r"^event.*title$", r"^label$", r"^event$"],
        "deu": [
            r"^titel$", r"^name$", r"^bezeichnung$", r"^veranstaltung.*name$",
            r"^veranstaltung.*titel$", r"^veranstaltung$",
        ],
        "fra": [
            r"^titre$", r"^nom$", r"^événement.*nom$", r"^événement.*titre$", r"^intitulé$",
            r"^événement$",
        ],
    },
    "description": {
        "eng": [
            r"^description$", r"^details$", r"^summary$", r"^notes$", r"^text$", r"^content$",
            r"^event.*description$",
        ],
        "deu": [
            r"^beschreibung$", r"^details$", r"^zusammenfassung$", r"^notizen$", r"^text$",
            r"^inhalt$", r"^veranstaltung.*beschreibung$",
        ],
        "fra": [
            r"^description$", r"^détails$", r"^résumé$", r"^notes$", r"^texte$", r"^contenu$",
            r"^événement.*description$",
        ],
    },
    "location_name": {
        "eng": [
            r"^venue$", r"^venue.*name$", r"^place$", r"^place.*name$", r"^location$",
            r"^location.*name$", r"^site$", r"^spot$", r"^where$",
        ],
        "deu": [
            r"^veranstaltungsort$", r"^ort$", r"^spielstätte$", r"^standort$", r"^platz$",
            r"^lokalität$", r"^wo$",
        ],
        "fra": [r"^lieu$", r"^endroit$", r"^place$", r"^salle$", r"^site$", r"^où$"],
    },
    "timestamp": {
        "eng": [
            r"^date$", r"^timestamp$", r"^datetime$", r"^date.*time$", r"^created.*at$",
            r"^event.*date$", r"^event.*time$", r"^start.*(date|time)$", r"^time$", r"^when$",
        ],
        "deu": [
            r"^datum$", r"^zeitstempel$", r"^erstellt.*am$", r"^veranstaltung.*datum$",
            r"^veranstaltung.*zeit$", r"^zeit$", r"^wann$",
        ],
        "fra": [
            r"^date$", r"^horodatage$", r"^créé.*le$", r"^événement.*date$",
            r"^événement.*heure$", r"^heure$", r"^quand$",
        ],
    },
    "location": {
        "eng": [
            r"^address$", r"^addr$", r"^location$", r"^place$", r"^venue$", r"^city$", r"^town$",
            r"^region$", r"^area$", r"^street$", r"^full.*address$", r"^event.*location$",
            r"^event.*address$", r"^event.*place$", r"^postal.*address$",
        ],
        "deu": [
            r"^adresse$", r"^ort$", r"^standort$", r"^platz$", r"^veranstaltungsort$", r"^stadt$",
            r"^region$", r"^straße$", r"^strasse$", r"^vollständige.*adresse$",
            r"^veranstaltung.*ort$", r"^veranstaltung.*adresse$", r"^postadresse$",
        ],
        "fra": [
            r"^adresse$", r"^lieu$", r"^emplacement$", r"^place$", r"^salle$", r"^ville$",
            r"^région$", r"^rue$", r"^adresse.*complète$", r"^événement.*lieu$",
            r"^événement.*adresse$", r"^adresse.*postale$",
        ],
    },
}

COMPILED_ROLE_PATTERNS = {
    role: {
        language: [re.compile(pattern, re.IGNORECASE) for pattern in patterns]
        for language, patterns in by_language.items()
    }
    for role, by_language in FIELD_ROLE_PATTERNS.items()
}

DEFAULT_LANGUAGE = "eng"
ROLE_NAME_WEIGHT = 0.6
ROLE_VALUE_WEIGHT = 0.4

# Seconds and milliseconds since the epoch, 2001 onwards
UNIX_SECONDS_RANGE = (1_000_000_000, 9_999_999_999)
UNIX_MILLIS_RANGE = (1_000_000_000_000, 9_999_999_999_999)

DATE_FORMATS = ("%d.%m.%Y", "%d/%m/%Y", "%m/%d/%Y", "%Y/%m/%d", "%d %B %Y", "%B %d, %Y")


def _string_ratio(stats: FieldStatistics) -> float:
    if not stats.occurrences:
        return 0.0
    return stats.type_distribution.get("string", 0) / stats.occurrences


def _average_sample_length(stats: FieldStatistics) -> float | None:
    """Mean length of the string samples; 0.0 when samples hold no strings, None without samples."""
    if not stats.unique_samples:
        return None
    strings = [sample for sample in stats.unique_samples if isinstance(sample, str)]
    if not strings:
        return 0.0
    return sum(len(sample) for sample in strings) / len(strings)


def _title_score(stats: FieldStatistics) -> float:
    if _string_ratio(stats) < 0.8:
        return 0.0
    length = _average_sample_length(stats)
    if length is None:
        return 0.5
    if length == 0:
        return 0.0
    if 10 <= length <= 100:
        return 1.0
    if 5 <= length <= 200:
        return 0.8
    if length < 3 or length > 500:
        return 0.3
    return 0.6


def _description_score(stats: FieldStatistics) -> float:
    if _string_ratio(stats) < 0.7:
        return 0.0
    length = _average_sample_length(stats)
    if length is None:
        return 0.5
    if length == 0:
        return 0.0
    if 20 <= length <= 500:
        return 1.0
    if 10 <= length <= 1000:
        return 0.8
    if length < 5:
        return 0.2
    if length > 1000:
        return 0.7
    return 0.6


def _place_text_score(stats: FieldStatistics, ideal_max: int, acceptable_max: int) -> float:
    """Venue names and addresses: short codes score low, long text stays acceptable."""
    if _string_ratio(stats) < 0.7:
        return 0.0
    length = _average_sample_length(stats)
    if length is None:
        return 0.5
    if length == 0:
        return 0.0
    if 3 <= length <= ideal_max:
        return 1.0
    if 2 <= length <= acceptable_max:
        return 0.8
    if length < 2:
        return 0.2
    return 0.6


def _location_name_score(stats: FieldStatistics) -> float:
    return _place_text_score(stats, ideal_max=50, acceptable_max=100)


def _location_score(stats: FieldStatistics) -> float:
    return _place_text_score(stats, ideal_max=100, acceptable_max=500)


def _parses_as_date(value: str) -> bool:
    text = value.strip()
    if not text:
        return False
    try:
        datetime.fromisoformat(text.replace("Z", "+00:00"))
        return True
    except ValueError:
        pass
    for date_format in DATE_FORMATS:
        try:
            datetime.strptime(text, date_format)
            return True
        except ValueError:
            continue
    return False


def _timestamp_score(stats: FieldStatistics) -> float:
    """
    How strongly the values look like points in time.

    Date-typed values (datetime instances and date strings) score highest,
    then date formats, then other parseable strings, then unix timestamps.
    """
    if not stats.occurrences:
        return 0.0

    date_ratio = stats.type_distribution.get("date", 0) / stats.occurrences
    if date_ratio >= 0.7:
        return 1.0
    if date_ratio >= 0.5:
        return 0.8

    date_formats = stats.formats.get("date", 0) + stats.formats.get("date-time", 0)
    if date_formats > 0:
        return min(1.0, 0.7 + (date_formats / stats.occurrences) * 0.3)

    if _string_ratio(stats) > 0.5:
        strings = [sample for sample in stats.unique_samples if isinstance(sample, str)]
        strings = strings[:MAX_COORDINATE_SAMPLES]
        if strings:
            parsed_ratio = sum(1 for sample in strings if _parses_as_date(sample)) / len(strings)
            if parsed_ratio >= 0.7:
                return 0.9
            if parsed_ratio >= 0.5:
                return 0.7
            if parsed_ratio >= 0.3:
                return 0.5

    numeric = stats.numeric_stats
    if _has_numeric_type(stats) and numeric is not None:
        for low, high in (UNIX_SECONDS_RANGE, UNIX_MILLIS_RANGE):
            if numeric.min > low and numeric.max < high:
                return 0.8

    return 0.0


ROLE_SCORERS = {
    "title": _title_score,
    "description": _description_score,
    "location_name": _location_name_score,
    "timestamp": _timestamp_score,
    "location": _location_score,
}


def _best_role_match(
    state: SchemaBuilderState,
    role: str,
    patterns: list[re.Pattern],
) -> str | None:
    best: tuple[str, float] | None = None
    for path, stats in state.field_stats.items():
        index = _name_match_index(stats.leaf_name, patterns)
        if index < 0:
            continue
        value_score = ROLE_SCORERS[role](stats)
        if value_score == 0:
            continue
        score = ROLE_NAME_WEIGHT * (1 - index / len(patterns)) + ROLE_VALUE_WEIGHT * value_score
        if best is None or score > best[1]:
            best = (path, score)
    return best[0] if best else None


def detect_field_role(state: SchemaBuilderState, role: str, language: str = DEFAULT_LANGUAGE) -> str | None:
    """
    Find the field playing a semantic role.

    Patterns for the dataset language are tried first; unknown languages use
    the English patterns, and other languages fall back to English when their
    own patterns find nothing.
    """
    by_language = COMPILED_ROLE_PATTERNS[role]
    match = _best_role_match(state, role, by_language.get(language, by_language[DEFAULT_LANGUAGE]))
    if match is None and language != DEFAULT_LANGUAGE:
        match = _best_role_match(state, role, by_language[DEFAULT_LANGUAGE])
    return match


def detect_field_mappings(state: SchemaBuilderState, language: str = DEFAULT_LANGUAGE) -> FieldMappings:
    """
    Detect title, description, location name, timestamp and location fields.

    Latitude and longitude come from the geo detection already stored on the
    state, so detect_geo_fields must have run first.
    """
    geo = state.detected_geo_fields
    return FieldMappings(
        title_path=detect_field_role(state, "title", language),
        description_path=detect_field_role(state, "description", language),
        location_name_path=detect_field_role(state, "location_name", language),
        timestamp_path=detect_field_role(state, "timestamp", language),
        latitude_path=geo.latitude,
        longitude_path=geo.longitude,
        location_path=detect_field_role(state, "location", language) or geo.location_field,
    )


# =======================
# ENUMS
# =======================

def _is_enum_candidate(stats: FieldStatistics, config: BuilderConfig) -> bool:
    if stats.dominant_type() not in STRING_ENUM_TYPES:
        return False

    unique = stats.unique_values
    if not 1 < unique < stats.occurrences:
        return False

    if config.enum_mode == "count":
        return unique <= config.enum_threshold
    return (unique / stats.occurrences) * 100 <= config.enum_threshold


def detect_enums(state: SchemaBuilderState, config: BuilderConfig) -> None:
    """
    Flag low-cardinality string fields as enum candidates.

    Enum values come from the bounded unique-sample list, so counts are
    approximate once a field has exceeded max_unique_values.
    """
    for stats in state.field_stats.values():
        if not _is_enum_candidate(stats, config):
            stats.is_enum_candidate = False
            stats.enum_values = None
            continue

        stats.is_enum_candidate = True
        stats.enum_values = [
            EnumValue(
                value=value,
                count=count,
                percent=(count / stats.occurrences) * 100,
            )
            for value, count in zip(stats.unique_samples, stats.sample_counts)
        ]


def detect_patterns(state: SchemaBuilderState, config: BuilderConfig) -> None:
    """Run all detection passes and store the results on the state."""
    state.detected_id_fields = detect_id_fields(state)
    state.detected_geo_fields = detect_geo_fields(state)
    state.field_mappings = detect_field_mappings(state, config.language)
    detect_enums(state, config)
