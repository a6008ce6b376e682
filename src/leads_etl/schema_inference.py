from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .config_loader import SchemaConfig
from .models import ROLES, RoleMapping

logger = logging.getLogger(__name__)

_KEY_NOISE_RE = re.compile(r"[_\-\s]")


def normalize_column_key(value: Any) -> str:
    return _KEY_NOISE_RE.sub("", str(value or "").lower())


def as_record(row: Any) -> Optional[Mapping]:
    """Return ``row`` as a key-value record, or ``None`` when it is not one."""
    if isinstance(row, Mapping):
        return row
    if isinstance(row, pd.Series):
        return row.to_dict()
    return None


def find_representative_row(rows: Sequence[Any]) -> Any:
    """Return the first record-shaped row, falling back to the nominal first row."""
    for row in rows:
        record = as_record(row)
        if record is not None:
            return record
    return rows[0] if rows else None


def _matching_term_index(key: Any, terms: Sequence[str]) -> Optional[int]:
    normalized_key = normalize_column_key(key)
    if not normalized_key:
        return None
    for index, term in enumerate(terms):
        normalized_term = normalize_column_key(term)
        if normalized_term and normalized_term in normalized_key:
            return index
    return None


def find_column_key(
    row: Any, terms: Sequence[str], strategy: str = "first_match"
) -> Optional[str]:
    """
    Pick the row key playing the role described by ``terms``.

    A key is eligible when its normalized form contains a normalized candidate
    term. ``first_match`` returns the first eligible key in row order;
    ``term_priority`` prefers the key matched by the earliest term and uses row
    order only to break ties between keys matched by the same term.
    """
    row = as_record(row)
    if row is None:
        return None
    eligible: List[tuple[int, int, str]] = []
    for position, key in enumerate(row.keys()):
        term_index = _matching_term_index(key, terms)
        if term_index is None:
            continue
        if strategy == "first_match":
            return key
        eligible.append((term_index, position, key))
    if not eligible:
        return None
    return min(eligible)[2]


def infer_role_mapping(
    rows: Sequence[Any], schema: Optional[SchemaConfig] = None
) -> RoleMapping:
    schema = schema or SchemaConfig()
    representative = find_representative_row(rows)
    terms_by_role: Dict[str, Iterable[str]] = schema.terms_by_role()
    selected = {
        role: find_column_key(representative, list(terms_by_role[role]), schema.strategy)
        for role in ROLES
    }
    mapping = RoleMapping(**selected)
    logger.info(
        "Inferred columns (%s): name=%s handle=%s phone=%s",
        schema.strategy,
        mapping.name or "-",
        mapping.handle or "-",
        mapping.phone or "-",
    )
    return mapping


__all__ = [
    "as_record",
    "find_column_key",
    "find_representative_row",
    "infer_role_mapping",
    "normalize_column_key",
]
