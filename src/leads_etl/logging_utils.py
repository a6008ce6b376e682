from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

from .config_loader import DEFAULT_LOG_FORMAT, PipelineConfig

LOG_LEVEL_ENV = "LEADS_ETL_LOG_LEVEL"


def _resolve_level(level_name: Optional[str], default: int = logging.WARNING) -> int:
    """Map a level name or number to its numeric value; unknown names give ``default``."""
    normalized = (level_name or "").strip().upper()
    if not normalized:
        return default
    if normalized.isdigit():
        return int(normalized)
    value = logging.getLevelName(normalized)
    return value if isinstance(value, int) else default


def quiet_library_loggers(names: Iterable[str], level: int) -> None:
    # Spreadsheet decoding emits per-cell chatter that drowns the pipeline's own diagnostics.
    for name in names:
        logging.getLogger(name).setLevel(level)


def configure_logging(config: PipelineConfig, level_override: Optional[str] = None) -> int:
    """
    Configure the root logger for a lead import and return the level in effect.

    Level precedence:

    1. ``LEADS_ETL_LOG_LEVEL`` environment variable (if set)
    2. ``level_override`` provided by the caller (e.g., ``--log-level``)
    3. ``config.logging.level`` from the YAML config
    4. Default ``WARNING`` level

    pandas and openpyxl report decoding problems (mixed column types, missing
    workbook styles) through :mod:`warnings`; with ``logging.capture_warnings``
    on they land in the ``py.warnings`` logger instead of bare stderr.
    """
    settings = config.logging
    env_level = os.getenv(LOG_LEVEL_ENV)
    level_value = _resolve_level(env_level or level_override or settings.level)

    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level_value)
    else:
        logging.basicConfig(level=level_value, format=settings.format or DEFAULT_LOG_FORMAT)

    logging.captureWarnings(settings.capture_warnings)
    quiet_library_loggers(settings.library_loggers, _resolve_level(settings.library_level))
    return level_value


__all__ = ["LOG_LEVEL_ENV", "configure_logging", "quiet_library_loggers"]
