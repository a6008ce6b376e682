"""Decode lead exports into a batch of generic rows.

Decoding either fully succeeds or raises :class:`LeadFileError`; callers never
hand partially decoded data to the normalization engine.
"""
from __future__ import annotations

import json
import logging
import os
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

JSON_ARRAY_KEYS = ("data", "items", "users", "profiles", "leads", "results")
EXCEL_SUFFIXES = {".xlsx", ".xls"}
CSV_SUFFIXES = {".csv"}
JSON_SUFFIXES = {".json"}


class LeadFileError(ValueError):
    """Raised when a lead export cannot be decoded."""


def _records_from_frame(df: pd.DataFrame) -> List[Dict[str, Any]]:
    df = df.dropna(how="all")
    # NaN cells become None so downstream code sees plain missing values.
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def _read_excel(path: Path) -> List[Dict[str, Any]]:
    df = pd.read_excel(path, sheet_name=0)
    return _records_from_frame(df)


def _read_csv(path: Path) -> List[Dict[str, Any]]:
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    except UnicodeDecodeError:
        # Excel "Save as CSV" on Windows writes cp1252.
        logger.info("%s is not UTF-8; decoding as cp1252", path.name)
        df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="cp1252")
    df = df.where(df != "", None)
    return _records_from_frame(df)


def extract_rows_from_json(payload: Any) -> List[Any]:
    """Locate the row array inside a decoded JSON document."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    for key in JSON_ARRAY_KEYS:
        if isinstance(payload.get(key), list):
            return payload[key]
    for key, value in payload.items():
        if isinstance(value, list):
            logger.info("Using array property %r as the row batch", key)
            return value
    logger.warning("JSON document has no array-valued property; treating it as empty")
    return []


def _read_json(path: Path) -> List[Any]:
    with open(path, "r", encoding="utf-8-sig") as handle:
        payload = json.load(handle)
    return extract_rows_from_json(payload)


def load_rows(path: Optional[Union[str, os.PathLike]]) -> List[Any]:
    if not path:
        raise LeadFileError("No input file given")
    file_path = Path(path)
    if not file_path.is_file():
        raise LeadFileError(f"Input file not found: {file_path}")

    suffix = file_path.suffix.lower()
    try:
        if suffix in EXCEL_SUFFIXES:
            rows = _read_excel(file_path)
        elif suffix in CSV_SUFFIXES:
            rows = _read_csv(file_path)
        elif suffix in JSON_SUFFIXES:
            rows = _read_json(file_path)
        else:
            raise LeadFileError(f"Unsupported file type: {file_path.suffix or file_path.name}")
    except LeadFileError:
        raise
    except (OSError, ValueError, ImportError, zipfile.BadZipFile) as exc:
        raise LeadFileError(f"Unable to read {file_path.name}: {exc}") from exc

    logger.info("Loaded %d row(s) from %s", len(rows), file_path)
    return rows


__all__ = ["JSON_ARRAY_KEYS", "LeadFileError", "extract_rows_from_json", "load_rows"]
