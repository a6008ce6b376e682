from __future__ import annotations

from typing import Any

from .config_loader import PipelineConfig, load_pipeline_config
from .loaders import LeadFileError, extract_rows_from_json, load_rows
from .models import Lead, LeadDraft, RoleMapping
from .normalization import (
    NormalizationSettings,
    clean_phone_number,
    normalize_rows,
    safe_get,
)
from .schema_inference import find_column_key, infer_role_mapping, normalize_column_key

__all__ = [
    "Lead",
    "LeadDraft",
    "LeadFileError",
    "NormalizationSettings",
    "PipelineConfig",
    "RoleMapping",
    "clean_phone_number",
    "extract_rows_from_json",
    "find_column_key",
    "infer_role_mapping",
    "load_config",
    "load_pipeline_config",
    "load_rows",
    "normalize_column_key",
    "normalize_rows",
    "safe_get",
]


def load_config(args: Any) -> PipelineConfig:
    return load_pipeline_config(args)

