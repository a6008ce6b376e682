from __future__ import annotations

import argparse
import csv
import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from .common import (
    LeadFileError,
    NormalizationSettings,
    load_config,
    load_rows,
    normalize_rows,
)
from .config_loader import PipelineConfig
from .logging_utils import configure_logging
from .models import Lead
from .outreach import lead_links
from .workflow import lead_stats

logger = logging.getLogger(__name__)

LEAD_COLUMNS = [
    "id",
    "name",
    "username",
    "phone",
    "original_phone",
    "status",
    "phone_display",
    "whatsapp_link",
    "instagram_link",
]


def leads_to_frame(leads: List[Lead], config: PipelineConfig) -> pd.DataFrame:
    rows = []
    for lead in leads:
        row = lead.to_dict()
        row["phone"] = lead.phone or ""
        row["original_phone"] = "" if lead.original_phone is None else str(lead.original_phone)
        row.update(
            lead_links(
                lead,
                template=config.outreach.message_template,
                default_region=config.outreach.default_region,
            )
        )
        rows.append(row)
    return pd.DataFrame(rows, columns=LEAD_COLUMNS)


def build(
    args: argparse.Namespace, config: Optional[PipelineConfig] = None
) -> Tuple[List[Lead], pd.DataFrame]:
    config = config or load_config(args)
    settings = NormalizationSettings.from_config(config.normalization)

    rows = load_rows(config.inputs.get("leads_file"))
    leads = normalize_rows(rows, settings=settings, schema=config.schema)
    return leads, leads_to_frame(leads, config)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Normalize a spreadsheet or JSON export of contacts into outreach leads."
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument("--input", type=str, default=None, help=".xlsx, .xls, .csv or .json file")
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--min-phone-digits", type=int, default=None)
    parser.add_argument("--max-phone-digits", type=int, default=None)
    parser.add_argument("--phone-country-prefix", type=str, default=None)
    parser.add_argument(
        "--schema-strategy",
        choices=["first_match", "term_priority"],
        default=None,
        help="How to choose between several columns matching the same role.",
    )
    parser.add_argument("--write-json", action="store_true", default=None)
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    args = parser.parse_args()

    config = load_config(args)
    configure_logging(config, level_override=args.log_level)
    try:
        leads, leads_df = build(args, config=config)
    except LeadFileError as exc:
        logger.error("%s", exc)
        return 1

    out_dir = config.outputs.dir
    out_dir.mkdir(parents=True, exist_ok=True)
    leads_path = out_dir / "normalized_leads.csv"
    leads_df.to_csv(str(leads_path), index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)
    logger.info("Saved: %s", leads_path)

    if config.outputs.write_json:
        json_path = Path(out_dir) / "normalized_leads.json"
        with open(json_path, "w", encoding="utf-8") as handle:
            json.dump(
                [lead.to_dict() for lead in leads],
                handle,
                ensure_ascii=False,
                indent=2,
                default=str,
            )
        logger.info("Saved: %s", json_path)

    stats = lead_stats(leads)
    logger.info("Leads: %d total, %d with phone", stats.total, stats.valid_phones)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
