"""Adapters for user-uploaded JSON and CSV files.

JSON files are expected to be canonical-shaped already: a list of day
records, ``{"records": [...]}``, or a single record.  CSV files have a header
row whose columns map onto flattened canonical fields, either as
``category.field`` / ``category_field`` or through the short aliases in
``sync_config.yaml`` (``steps`` → ``workout.steps``).

Rows or entries without a usable date are skipped.  Cells that cannot be
coerced are dropped; the rest of the row still imports.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import PurePath
from typing import Any

from healthday.telemetry.base import CATEGORY_TYPES, DayRecord, normalize_date
from healthday.telemetry.config_loader import SyncConfig, get_sync_config
from healthday.telemetry.errors import UnsupportedFormatError

logger = logging.getLogger("healthday.telemetry.adapters.files")

_DATE_COLUMNS = ("date", "day")


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def normalize_json(data: Any) -> list[DayRecord]:
    """Validate parsed JSON against the canonical shape.

    Args:
        data: Parsed JSON (list, ``{"records": [...]}`` or single record).

    Returns:
        One fragment per valid entry, in file order.
    """
    if isinstance(data, dict):
        entries = data.get("records") if isinstance(data.get("records"), list) else [data]
    elif isinstance(data, list):
        entries = data
    else:
        return []

    fragments: list[DayRecord] = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning("JSON entry %d is not an object; skipped", i)
            continue
        record = DayRecord.from_dict(entry)
        if not record.date:
            logger.warning("JSON entry %d has no usable date; skipped", i)
            continue
        if not record.source:
            record.source = "json"
        fragments.append(record)
    return fragments


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


def parse_csv_string(text: str) -> list[dict[str, str]]:
    """Parse CSV text with a header row into a list of row dicts."""
    reader = csv.DictReader(io.StringIO(text.lstrip("﻿")))
    rows: list[dict[str, str]] = []
    for row in reader:
        cleaned = {
            (key or "").strip(): (value or "").strip()
            for key, value in row.items()
            if key is not None and isinstance(value, str)
        }
        if any(cleaned.values()):
            rows.append(cleaned)
    return rows


def resolve_column(column: str, config: SyncConfig) -> tuple[str, str] | None:
    """Map a CSV header onto ``(category, field)``; None if unrecognized."""
    name = column.strip().lower()
    target = config.csv_alias(name)
    if target is None:
        for separator in (".", "_"):
            category, sep, field_name = name.partition(separator)
            if sep and category in CATEGORY_TYPES:
                target = f"{category}.{field_name}"
                break
    if target is None:
        return None
    category, _, field_name = target.partition(".")
    if field_name not in CATEGORY_TYPES[category].__dataclass_fields__:  # type: ignore[attr-defined]
        return None
    return category, field_name


def normalize_csv(rows: list[dict[str, str]], config: SyncConfig | None = None) -> list[DayRecord]:
    """Convert parsed CSV rows into fragments.

    Args:
        rows:   Output of ``parse_csv_string``.
        config: Sync config providing column aliases (default: global config).

    Returns:
        One fragment per row with a usable date, in file order.
    """
    config = config or get_sync_config()
    fragments: list[DayRecord] = []
    unknown: set[str] = set()

    for line, raw_row in enumerate(rows, start=2):
        row = {key.strip().lower(): value for key, value in raw_row.items()}
        day = None
        for column in _DATE_COLUMNS:
            if row.get(column):
                day = normalize_date(row[column])
                break
        if day is None:
            logger.warning("CSV line %d has no usable date; skipped", line)
            continue

        nested: dict[str, Any] = {"date": day, "source": row.get("source") or "csv"}
        for column, value in row.items():
            if column in _DATE_COLUMNS or column == "source" or value == "":
                continue
            resolved = resolve_column(column, config)
            if resolved is None:
                unknown.add(column)
                continue
            category, field_name = resolved
            nested.setdefault(category, {})[field_name] = value
        fragments.append(DayRecord.from_dict(nested))

    if unknown:
        logger.info("Ignored unrecognized CSV columns: %s", sorted(unknown))
    return fragments


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def import_file(filename: str, text: str, config: SyncConfig | None = None) -> list[DayRecord]:
    """Parse an uploaded file into fragments, dispatching on extension.

    Args:
        filename: Original filename; ``.json`` and ``.csv`` are supported.
        text:     File contents.
        config:   Optional sync config (CSV aliases).

    Returns:
        Fragments in file order.

    Raises:
        UnsupportedFormatError: Unknown extension or unparseable JSON.  The
                                whole file is rejected.
    """
    extension = PurePath(filename).suffix.lower().lstrip(".")
    if extension == "json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise UnsupportedFormatError(f"{filename} is not valid JSON: {exc}") from exc
        fragments = normalize_json(data)
    elif extension == "csv":
        fragments = normalize_csv(parse_csv_string(text), config)
    else:
        raise UnsupportedFormatError(f"Unsupported file type: .{extension or '?'} ({filename})")

    logger.info("Parsed %s → %d day fragments", filename, len(fragments))
    return fragments
