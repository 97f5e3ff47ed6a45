"""
Coordinate parsing for geo-field detection.

Parses single coordinate strings (decimal degrees, DMS, degrees with decimal
minutes, directional suffix) and recognizes fields that carry both
coordinates in one value.
"""

import re
from typing import Any, NamedTuple

LATITUDE_BOUNDS = (-90.0, 90.0)
LONGITUDE_BOUNDS = (-180.0, 180.0)

# Share of samples that must match for a positive format detection
FORMAT_MATCH_THRESHOLD = 0.7

DECIMAL_PATTERN = re.compile(r"^-?(?:\d+(?:\.\d+)?|\.\d+)(?:[eE][+-]?\d+)?$")
DMS_PATTERN = re.compile(
    r"^(-?\d{1,3})[°\s]\s*(\d{1,2})['′\s]\s*(\d{1,2}\.?\d{0,6})[\"″\s]?\s*([NSEW])?$",
    re.IGNORECASE,
)
DM_PATTERN = re.compile(r"^(-?\d{1,3})[°\s](\d{1,3}\.?\d{0,6})['′\s]?([NSEW])?$", re.IGNORECASE)
DIRECTIONAL_PATTERN = re.compile(r"^(-?\d{1,3}\.?\d{0,10})\s{0,2}([NSEW])$", re.IGNORECASE)

COMMA_PAIR_PATTERN = re.compile(r"^(-?\d{1,3}(?:\.\d{0,10})?),\s{0,5}(-?\d{1,3}(?:\.\d{0,10})?)$")
SPACE_PAIR_PATTERN = re.compile(r"^(-?\d{1,3}(?:\.\d{0,10})?)\s{1,5}(-?\d{1,3}(?:\.\d{0,10})?)$")


class CombinedFormat(NamedTuple):
    """Detected combined-coordinate format and the share of samples matching it."""

    format: str
    confidence: float


def in_bounds(value: float, bounds: tuple[float, float]) -> bool:
    return bounds[0] <= value <= bounds[1]


def _apply_direction(value: float, direction: str | None) -> float:
    if direction and direction.upper() in ("S", "W"):
        return -abs(value)
    return value


def parse_coordinate(value: Any) -> float | None:
    """
    Parse a single coordinate into decimal degrees.

    Tries decimal degrees, then DMS (40°26'46"N), then degrees with decimal
    minutes (40°42.768'N), then a directional suffix (40.7128 N).

    Returns:
        Decimal degrees, or None if the value is not a coordinate
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    if DECIMAL_PATTERN.match(text):
        return float(text)

    match = DMS_PATTERN.match(text)
    if match:
        degrees = float(match.group(1))
        fractional = float(match.group(2)) / 60 + float(match.group(3)) / 3600
        return _apply_direction(degrees + fractional, match.group(4))

    match = DM_PATTERN.match(text)
    if match:
        degrees = float(match.group(1))
        return _apply_direction(degrees + float(match.group(2)) / 60, match.group(3))

    match = DIRECTIONAL_PATTERN.match(text)
    if match:
        return _apply_direction(float(match.group(1)), match.group(2))

    return None


def _pair_order(first: float, second: float) -> tuple[bool, bool]:
    """Whether (first, second) is valid as lat/lng and as lng/lat."""
    lat_lng = in_bounds(first, LATITUDE_BOUNDS) and in_bounds(second, LONGITUDE_BOUNDS)
    lng_lat = in_bounds(first, LONGITUDE_BOUNDS) and in_bounds(second, LATITUDE_BOUNDS)
    return lat_lng, lng_lat


def _check_pairs(
    pairs: list[tuple[float, float] | None],
    lat_lng_label: str,
    lng_lat_label: str,
) -> CombinedFormat | None:
    if not pairs:
        return None

    matches = lat_lng = lng_lat = 0
    for pair in pairs:
        if pair is None:
            continue
        is_lat_lng, is_lng_lat = _pair_order(*pair)
        if is_lat_lng or is_lng_lat:
            matches += 1
        lat_lng += is_lat_lng
        lng_lat += is_lng_lat

    confidence = matches / len(pairs)
    if matches == 0 or confidence < FORMAT_MATCH_THRESHOLD:
        return None

    label = lat_lng_label if lat_lng >= lng_lat else lng_lat_label
    return CombinedFormat(format=label, confidence=confidence)


def _split_pair(value: Any, pattern: re.Pattern) -> tuple[float, float] | None:
    if not isinstance(value, str):
        return None
    match = pattern.match(value.strip())
    if not match:
        return None
    return float(match.group(1)), float(match.group(2))


def check_comma_format(samples: list[Any]) -> CombinedFormat | None:
    """Detect "40.7128, -74.0060" style values."""
    return _check_pairs(
        [_split_pair(sample, COMMA_PAIR_PATTERN) for sample in samples],
        "lat,lng",
        "lng,lat",
    )


def check_space_format(samples: list[Any]) -> CombinedFormat | None:
    """Detect "40.7128 -74.0060" style values."""
    return _check_pairs(
        [_split_pair(sample, SPACE_PAIR_PATTERN) for sample in samples],
        "lat lng",
        "lng lat",
    )


def _array_pair(value: Any) -> tuple[float, float] | None:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    first, second = (parse_coordinate(item) if not isinstance(item, str) else None for item in value)
    if first is None or second is None:
        return None
    return first, second


def check_array_format(samples: list[Any]) -> CombinedFormat | None:
    """Detect [lat, lng] / [lng, lat] numeric pairs."""
    return _check_pairs([_array_pair(sample) for sample in samples], "[lat,lng]", "[lng,lat]")


def detect_combined_format(samples: list[Any]) -> CombinedFormat | None:
    """Best matching combined format among comma, space and array-pair."""
    for check in (check_comma_format, check_space_format, check_array_format):
        result = check(samples)
        if result is not None:
            return result
    return None
