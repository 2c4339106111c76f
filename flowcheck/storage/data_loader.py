"""Data source — reads parameter rows from JSON or CSV files."""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path

from flowcheck.errors import DataLoadError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = (".json", ".csv")


def resolve_data_path(reference: str, data_dir: Path) -> Path:
    """Absolute references are used as-is; relative ones live under ``data_dir``."""
    path = Path(reference)
    if path.is_absolute():
        return path
    return Path(data_dir) / path


def _parse_json(content: str, path: Path) -> list[dict[str, str]]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON in data file {path}: {e}") from e
    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        raise DataLoadError(f"Data file {path} must contain a list of objects")
    return [
        {str(k): "" if v is None else str(v) for k, v in row.items()}
        for row in data
    ]


def _parse_csv(content: str) -> list[dict[str, str]]:
    reader = csv.DictReader(io.StringIO(content), skipinitialspace=True)
    rows = []
    for row in reader:
        # Skip blank lines and rows with only empty cells
        if not any((v or "").strip() for v in row.values()):
            continue
        rows.append({
            (k or "").strip(): (v or "").strip()
            for k, v in row.items()
            if k is not None
        })
    return rows


def load_rows(reference: str, data_dir: Path) -> list[dict[str, str]]:
    """Load parameter rows from a data file.

    Raises:
        DataLoadError: the file is missing, unreadable, or not .json / .csv.
    """
    path = resolve_data_path(reference, data_dir)
    if not path.exists():
        raise DataLoadError(f"Data file not found: {path}")

    ext = path.suffix.lower()
    if ext not in SUPPORTED_FORMATS:
        raise DataLoadError(f"Unsupported data file format: {ext}. Use .json or .csv")

    try:
        content = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise DataLoadError(f"Could not read data file {path}: {e}") from e

    rows = _parse_json(content, path) if ext == ".json" else _parse_csv(content)
    logger.debug("Loaded %d rows from %s", len(rows), path)
    return rows
