from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml  # type: ignore[import-untyped]

DEFAULT_NAME_TERMS = [
    "nome",
    "name",
    "full_name",
    "fullname",
    "full name",
    "title",
    "razao",
    "cliente",
    "customer",
    "business_name",
    "external_url",
]
DEFAULT_HANDLE_TERMS = [
    "usuario",
    "user",
    "username",
    "user_name",
    "instagram",
    "ig",
    "perfil",
    "profile",
    "link",
    "handle",
    "url",
    "profile_url",
    "user_id",
]
DEFAULT_PHONE_TERMS = [
    "telefone",
    "celular",
    "phone",
    "mobile",
    "whatsapp",
    "wpp",
    "cel",
    "tel",
    "contato",
    "contact",
    "numero",
    "phone_number",
    "contact_phone_number",
    "public_phone_country_code",
    "whatsapp_number",
    "contact_phone",
]
DEFAULT_SPLIT_PHONE_FIELDS: List[Tuple[str, str]] = [
    ("public_phone_country_code", "public_phone_number"),
    ("country_code", "local_number"),
]
DEFAULT_SOCIAL_DOMAINS = ["instagram.com"]
DEFAULT_MESSAGE_TEMPLATE = (
    "Olá {nome}, tudo bem? Vi seu perfil no Instagram e achei seu trabalho incrível! "
    "Gostaria de conversar sobre uma oportunidade."
)

SCHEMA_STRATEGIES = ("first_match", "term_priority")

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
# Loggers of the spreadsheet stack; chatty at DEBUG.
DEFAULT_LIBRARY_LOGGERS = ["openpyxl", "py.warnings"]


@dataclass
class OutputsConfig:
    dir: Path
    write_json: bool = False


@dataclass
class SchemaConfig:
    name_terms: List[str] = field(default_factory=lambda: list(DEFAULT_NAME_TERMS))
    handle_terms: List[str] = field(default_factory=lambda: list(DEFAULT_HANDLE_TERMS))
    phone_terms: List[str] = field(default_factory=lambda: list(DEFAULT_PHONE_TERMS))
    strategy: str = "first_match"

    def terms_by_role(self) -> Dict[str, List[str]]:
        return {"name": self.name_terms, "handle": self.handle_terms, "phone": self.phone_terms}


@dataclass
class NormalizationConfig:
    min_phone_digits: int = 10
    max_phone_digits: int = 15
    phone_country_prefix: str = "55"
    social_domains: List[str] = field(default_factory=lambda: list(DEFAULT_SOCIAL_DOMAINS))
    split_phone_fields: List[Tuple[str, str]] = field(
        default_factory=lambda: list(DEFAULT_SPLIT_PHONE_FIELDS)
    )
    missing_name_sentinels: List[str] = field(default_factory=lambda: ["Sem Nome"])
    name_placeholder: str = "Lead sem nome"


@dataclass
class OutreachConfig:
    message_template: str = DEFAULT_MESSAGE_TEMPLATE
    default_region: str = "BR"


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    format: str = DEFAULT_LOG_FORMAT
    capture_warnings: bool = True
    library_level: str = "WARNING"
    library_loggers: List[str] = field(default_factory=lambda: list(DEFAULT_LIBRARY_LOGGERS))


@dataclass
class PipelineConfig:
    inputs: Dict[str, Optional[str]]
    outputs: OutputsConfig
    schema: SchemaConfig
    normalization: NormalizationConfig
    outreach: OutreachConfig
    logging: LoggingConfig


def _load_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _split_pairs(raw: Any) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for entry in raw or []:
        if isinstance(entry, dict):
            country, local = entry.get("country_code"), entry.get("number")
        else:
            country, local = (list(entry) + [None, None])[:2]
        if country and local:
            pairs.append((str(country), str(local)))
    return pairs


def load_pipeline_config(args: argparse.Namespace) -> PipelineConfig:
    config_data = _load_yaml(getattr(args, "config", None))
    inputs = config_data.get("inputs", {})
    outputs_cfg = config_data.get("outputs", {})
    schema_cfg = config_data.get("schema", {})
    normalization_cfg = config_data.get("normalization", {})
    outreach_cfg = config_data.get("outreach", {})
    logging_cfg = config_data.get("logging", {})

    outputs_dir = Path(getattr(args, "out_dir", None) or outputs_cfg.get("dir") or os.getcwd())
    outputs = OutputsConfig(
        dir=outputs_dir,
        write_json=bool(getattr(args, "write_json", None) or outputs_cfg.get("write_json", False)),
    )

    schema = SchemaConfig(
        name_terms=list(schema_cfg.get("name_terms") or DEFAULT_NAME_TERMS),
        handle_terms=list(schema_cfg.get("handle_terms") or DEFAULT_HANDLE_TERMS),
        phone_terms=list(schema_cfg.get("phone_terms") or DEFAULT_PHONE_TERMS),
        strategy=getattr(args, "schema_strategy", None)
        or schema_cfg.get("strategy", "first_match"),
    )
    if schema.strategy not in SCHEMA_STRATEGIES:
        raise ValueError(
            f"schema.strategy must be one of {', '.join(SCHEMA_STRATEGIES)}; got {schema.strategy!r}"
        )

    split_fields = _split_pairs(normalization_cfg.get("split_phone_fields"))
    normalization = NormalizationConfig(
        min_phone_digits=int(
            getattr(args, "min_phone_digits", None)
            or normalization_cfg.get("min_phone_digits", 10)
        ),
        max_phone_digits=int(
            getattr(args, "max_phone_digits", None)
            or normalization_cfg.get("max_phone_digits", 15)
        ),
        phone_country_prefix=str(
            getattr(args, "phone_country_prefix", None)
            or normalization_cfg.get("phone_country_prefix", "55")
        ),
        social_domains=list(normalization_cfg.get("social_domains") or DEFAULT_SOCIAL_DOMAINS),
        split_phone_fields=split_fields or list(DEFAULT_SPLIT_PHONE_FIELDS),
        missing_name_sentinels=list(
            normalization_cfg.get("missing_name_sentinels") or ["Sem Nome"]
        ),
        name_placeholder=normalization_cfg.get("name_placeholder") or "Lead sem nome",
    )

    outreach = OutreachConfig(
        message_template=outreach_cfg.get("message_template") or DEFAULT_MESSAGE_TEMPLATE,
        default_region=outreach_cfg.get("default_region") or "BR",
    )

    arg_level = getattr(args, "log_level", None)
    effective_level = (arg_level or logging_cfg.get("level") or "WARNING").upper()
    logging_config = LoggingConfig(
        level=effective_level,
        format=logging_cfg.get("format") or DEFAULT_LOG_FORMAT,
        capture_warnings=bool(logging_cfg.get("capture_warnings", True)),
        library_level=str(logging_cfg.get("library_level") or "WARNING").upper(),
        library_loggers=list(logging_cfg.get("library_loggers") or DEFAULT_LIBRARY_LOGGERS),
    )

    resolved_inputs = {
        "leads_file": getattr(args, "input", None) or inputs.get("leads_file"),
    }

    return PipelineConfig(
        inputs=resolved_inputs,
        outputs=outputs,
        schema=schema,
        normalization=normalization,
        outreach=outreach,
        logging=logging_config,
    )
