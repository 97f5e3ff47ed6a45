"""
Record readers for the CLI (JSON array, JSON Lines, CSV).

Records are yielded one at a time and grouped into batches, so a file is
never handed to the builder as a whole.
"""

import csv
import json
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

FORMATS_BY_SUFFIX = {
    ".json": "json",
    ".jsonl": "jsonl",
    ".ndjson": "jsonl",
    ".csv": "csv",
}

SIGNS = ("-", "+")


def detect_format(file_path: str | Path) -> str:
    """
    Pick the reader from the file suffix.

    Raises:
        ValueError: If the suffix is not supported
    """
    suffix = Path(file_path).suffix.lower()
    if suffix not in FORMATS_BY_SUFFIX:
        raise ValueError(f"Unsupported file format: {suffix or file_path}")
    return FORMATS_BY_SUFFIX[suffix]


def coerce_csv_value(value: str | None) -> Any:
    """Empty cells become None, numeric cells become int/float, the rest stays text."""
    if value is None:
        return None
    text = value.strip()
    if text == "":
        return None

    digits = text[1:] if text[0] in SIGNS else text
    if digits.isdigit():
        # Leading zeros (postal codes, padded ids) stay text
        if len(digits) > 1 and digits.startswith("0"):
            return value
        return int(text)
    try:
        number = float(text)
    except ValueError:
        return value
    # "nan" / "inf" are kept as text
    return number if number == number and abs(number) != float("inf") else value


def _read_json(path: Path) -> Iterator[Any]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        yield from data
    else:
        yield data


def _read_jsonl(path: Path) -> Iterator[Any]:
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{line_number}: invalid JSON line: {e.msg}") from e


def _read_csv(path: Path) -> Iterator[dict[str, Any]]:
    with open(path, encoding="utf-8", newline="") as f:
        for row in csv.DictReader(f):
            yield {key: coerce_csv_value(value) for key, value in row.items() if key is not None}


def read_records(file_path: str | Path, file_format: str | None = None) -> Iterator[Any]:
    """
    Yield records from a file.

    Args:
        file_path: Input file
        file_format: json, jsonl or csv; detected from the suffix when omitted

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the format is unsupported or the content is not valid JSON
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {file_path}")

    file_format = (file_format or detect_format(path)).lower()
    if file_format == "json":
        return _read_json(path)
    elif file_format == "jsonl":
        return _read_jsonl(path)
    elif file_format == "csv":
        return _read_csv(path)
    else:
        raise ValueError(f"Unsupported file format: {file_format}")


def iter_batches(records: Iterable[Any], batch_size: int) -> Iterator[list[Any]]:
    """Group records into lists of at most batch_size, preserving order."""
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    batch = []
    for record in records:
        batch.append(record)
        if len(batch) >= batch_size:
            yield batch
            batch = []
    if batch:
        yield batch
