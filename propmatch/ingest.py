"""Load property lists from disk.

Supported inputs:
- ``.json`` — an array of objects with ``description``, ``limit`` and
  ``mortgageAmount`` keys (money fields optional, any scalar type).
- ``.csv`` — the same columns as a header row; every cell read as text.

Records come back fully materialized, in file order. Both formats read the
whole file into memory; there is no streaming reader.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import polars as pl

from .models import Property

log = logging.getLogger(__name__)

SUPPORTED_FILE_EXTENSIONS = {
    ".json": "json",
    ".csv": "csv",
}

REQUIRED_FIELDS = ["description"]


def _ensure_file_exists(path: Path) -> None:
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")


def _records_from_rows(rows: list[Any], path: Path) -> list[Property]:
    records: list[Property] = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise ValueError(f"{path}: item {i} is not an object")
        missing = [f for f in REQUIRED_FIELDS if row.get(f) in (None, "")]
        if missing:
            raise ValueError(f"{path}: item {i} is missing {', '.join(missing)}")
        records.append(Property.from_dict(row))
    return records


def _read_json_rows(path: Path) -> list[Any]:
    with path.open("r", encoding="utf-8") as f:
        try:
            parsed = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"{path}: invalid JSON: {e}") from e
    if not isinstance(parsed, list):
        raise ValueError(f"{path}: expected a JSON array of property objects")
    return parsed


def _read_csv_rows(path: Path) -> list[dict[str, Any]]:
    df = pl.read_csv(path, infer_schema_length=0)
    if "description" not in df.columns:
        raise ValueError(
            f"{path}: CSV must have a 'description' column; got {df.columns}"
        )
    return df.to_dicts()


def load_properties(path: Path | str) -> list[Property]:
    """Read a property list. Raises FileNotFoundError / ValueError."""
    path = Path(path)
    _ensure_file_exists(path)
    fmt = SUPPORTED_FILE_EXTENSIONS.get(path.suffix.lower())
    if fmt is None:
        raise ValueError(
            f"Unsupported input format {path.suffix!r}; "
            f"expected one of {', '.join(sorted(SUPPORTED_FILE_EXTENSIONS))}"
        )

    rows = _read_json_rows(path) if fmt == "json" else _read_csv_rows(path)
    records = _records_from_rows(rows, path)
    log.info("Loaded %d records from %s", len(records), path)
    return records
