from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .config_loader import (
    DEFAULT_SOCIAL_DOMAINS,
    DEFAULT_SPLIT_PHONE_FIELDS,
    NormalizationConfig,
    SchemaConfig,
)
from .models import Lead, LeadDraft, RoleMapping
from .schema_inference import as_record, infer_role_mapping

logger = logging.getLogger(__name__)

NON_DIGIT_RE = re.compile(r"\D")
LETTER_RE = re.compile(r"[A-Za-z]")
HANDLE_SHAPE_RE = re.compile(r"^[A-Za-z0-9._]+$")
WHITESPACE_RE = re.compile(r"\s")
ANY_URL_PREFIX_RE = re.compile(r"^[a-z][a-z0-9+.-]*://[^/?]*/?", re.IGNORECASE)

NAME_FALLBACK_KEYS = ("name", "nome")
HANDLE_FALLBACK_KEYS = ("username", "usuario")


@dataclass
class NormalizationSettings:
    min_phone_digits: int = 10
    max_phone_digits: int = 15
    phone_country_prefix: str = "55"
    social_domains: List[str] = field(default_factory=lambda: list(DEFAULT_SOCIAL_DOMAINS))
    split_phone_fields: List[Tuple[str, str]] = field(
        default_factory=lambda: list(DEFAULT_SPLIT_PHONE_FIELDS)
    )
    missing_name_sentinels: List[str] = field(default_factory=lambda: ["Sem Nome"])
    name_placeholder: str = "Lead sem nome"

    @classmethod
    def from_config(cls, config: NormalizationConfig) -> "NormalizationSettings":
        return cls(
            min_phone_digits=config.min_phone_digits,
            max_phone_digits=config.max_phone_digits,
            phone_country_prefix=config.phone_country_prefix or "55",
            social_domains=list(config.social_domains),
            split_phone_fields=list(config.split_phone_fields),
            missing_name_sentinels=list(config.missing_name_sentinels),
            name_placeholder=config.name_placeholder or "Lead sem nome",
        )

    def phone_prefix_pattern(self) -> "re.Pattern[str]":
        return re.compile(rf"^@?{re.escape(self.phone_country_prefix)}\d+")

    def profile_url_pattern(self) -> "re.Pattern[str]":
        domains = "|".join(re.escape(domain.lower()) for domain in self.social_domains if domain)
        return re.compile(rf"^(https?://)?([\w-]+\.)*({domains})/", re.IGNORECASE)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.api.types.is_scalar(value) and pd.isna(value))
    except (TypeError, ValueError):
        return False


def _plain_value(value: Any) -> Any:
    if _is_missing(value):
        return ""
    # Spreadsheet engines hand back whole numbers as floats.
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _coerce_to_string(value: Any) -> str:
    return str(_plain_value(value)).strip()


def safe_get(row: Any, key: Optional[str]) -> Any:
    if key is None:
        return ""
    try:
        return _plain_value(row.get(key, ""))
    except (AttributeError, KeyError, TypeError):
        return ""


def clean_phone_number(
    value: Any, min_digits: int = 10, max_digits: int = 15
) -> Optional[str]:
    """
    Reduce ``value`` to its digits, or ``None`` when it cannot be a phone number.

    Never raises: missing values, numbers and arbitrary objects are all accepted.
    """
    if not pd.api.types.is_scalar(value):
        return None
    try:
        digits = NON_DIGIT_RE.sub("", _coerce_to_string(value))
    except Exception:  # pragma: no cover - str() of exotic objects
        logger.debug("Unable to coerce phone value %r", value)
        return None
    if len(digits) < min_digits or (max_digits and len(digits) > max_digits):
        return None
    return digits


def _first_populated(row: Any, keys: Sequence[str]) -> Any:
    for key in keys:
        value = safe_get(row, key)
        if _coerce_to_string(value):
            return value
    return ""


def recover_split_phone(row: Any, pairs: Sequence[Tuple[str, str]]) -> str:
    for country_key, number_key in pairs:
        country = _coerce_to_string(safe_get(row, country_key))
        number = _coerce_to_string(safe_get(row, number_key))
        if country and number:
            return f"{country}{number}"
    return ""


def extract_draft(
    row: Any, mapping: RoleMapping, settings: NormalizationSettings
) -> LeadDraft:
    if mapping.name:
        raw_name = safe_get(row, mapping.name)
    else:
        raw_name = _first_populated(row, NAME_FALLBACK_KEYS)
    if mapping.handle:
        raw_user = safe_get(row, mapping.handle)
    else:
        raw_user = _first_populated(row, HANDLE_FALLBACK_KEYS)
    raw_phone = safe_get(row, mapping.phone)
    phone = clean_phone_number(raw_phone, settings.min_phone_digits, settings.max_phone_digits)
    if phone is None:
        # Scraper exports often map the country-code column itself as the phone.
        recovered = recover_split_phone(row, settings.split_phone_fields)
        recovered_phone = clean_phone_number(
            recovered, settings.min_phone_digits, settings.max_phone_digits
        )
        if recovered and (recovered_phone or not _coerce_to_string(raw_phone)):
            raw_phone, phone = recovered, recovered_phone

    return LeadDraft(
        name=_coerce_to_string(raw_name),
        username=_coerce_to_string(raw_user),
        phone=phone,
        original_phone=raw_phone,
    )


def looks_like_phone(value: str, settings: NormalizationSettings) -> bool:
    if not value:
        return False
    digits = NON_DIGIT_RE.sub("", value)
    if len(digits) >= 8 and not LETTER_RE.search(value):
        return True
    if settings.phone_prefix_pattern().match(WHITESPACE_RE.sub("", value)):
        return True
    return len(value) > 6 and len(digits) / len(value) > 0.8


def detect_phone_in_handle(draft: LeadDraft, settings: NormalizationSettings) -> LeadDraft:
    if not looks_like_phone(draft.username, settings):
        return draft
    changes: Dict[str, Any] = {"username": ""}
    if draft.phone is None:
        changes["phone"] = clean_phone_number(
            draft.username, settings.min_phone_digits, settings.max_phone_digits
        )
    logger.debug("Handle %r looks like a phone number; discarding it", draft.username)
    return draft.replace(**changes)


def promote_name_to_handle(draft: LeadDraft, settings: NormalizationSettings) -> LeadDraft:
    if draft.username or len(draft.name) <= 2 or not HANDLE_SHAPE_RE.match(draft.name):
        return draft
    return draft.replace(username=draft.name)


def strip_handle_decoration(draft: LeadDraft, settings: NormalizationSettings) -> LeadDraft:
    handle = draft.username
    if not handle:
        return draft
    handle = handle.strip().lstrip("@")
    if settings.social_domains:
        handle = settings.profile_url_pattern().sub("", handle)
    # Links to hosts outside the known profile domains keep only their path.
    handle = ANY_URL_PREFIX_RE.sub("", handle)
    handle = handle.split("?", 1)[0].strip().rstrip("/").lstrip("@")
    return draft.replace(username=handle.strip())


def apply_name_fallback(draft: LeadDraft, settings: NormalizationSettings) -> LeadDraft:
    if draft.name and draft.name not in settings.missing_name_sentinels:
        return draft
    return draft.replace(name=draft.username or settings.name_placeholder)


RepairStep = Callable[[LeadDraft, NormalizationSettings], LeadDraft]

REPAIR_CHAIN: Tuple[RepairStep, ...] = (
    detect_phone_in_handle,
    promote_name_to_handle,
    strip_handle_decoration,
    apply_name_fallback,
)


def repair_draft(
    draft: LeadDraft,
    settings: NormalizationSettings,
    steps: Sequence[RepairStep] = REPAIR_CHAIN,
) -> LeadDraft:
    for step in steps:
        draft = step(draft, settings)
    return draft


def _as_row(row: Any) -> Mapping:
    record = as_record(row)
    if record is not None:
        return record
    logger.debug("Row of type %s is not a key-value record; using an empty row", type(row))
    return {}


def new_batch_token() -> str:
    return uuid.uuid4().hex[:12]


def normalize_row(
    row: Any,
    mapping: RoleMapping,
    settings: NormalizationSettings,
    lead_id: str,
) -> Lead:
    draft = repair_draft(extract_draft(_as_row(row), mapping, settings), settings)
    return Lead(
        id=lead_id,
        name=draft.name,
        username=draft.username,
        phone=draft.phone,
        original_phone=draft.original_phone,
    )


def normalize_rows(
    rows: Sequence[Any],
    settings: Optional[NormalizationSettings] = None,
    schema: Optional[SchemaConfig] = None,
    mapping: Optional[RoleMapping] = None,
) -> List[Lead]:
    """
    Turn a decoded batch of rows into leads, one per row and in input order.

    ``mapping`` skips schema inference when the caller already knows the columns.
    """
    if not rows:
        return []
    settings = settings or NormalizationSettings()
    mapping = mapping or infer_role_mapping(rows, schema)
    batch_token = new_batch_token()

    leads = [
        normalize_row(row, mapping, settings, f"lead-{index}-{batch_token}")
        for index, row in enumerate(rows)
    ]
    with_phone = sum(1 for lead in leads if lead.phone)
    logger.info("Normalized %d lead(s); %d with a usable phone", len(leads), with_phone)
    return leads


__all__ = [
    "NormalizationSettings",
    "REPAIR_CHAIN",
    "apply_name_fallback",
    "clean_phone_number",
    "detect_phone_in_handle",
    "extract_draft",
    "looks_like_phone",
    "normalize_row",
    "normalize_rows",
    "promote_name_to_handle",
    "recover_split_phone",
    "repair_draft",
    "safe_get",
    "strip_handle_decoration",
]
