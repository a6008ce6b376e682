import math

import pandas as pd
import pytest

from leads_etl import normalization as norm
from leads_etl.common import normalize_rows
from leads_etl.models import LeadDraft, RoleMapping
from leads_etl.normalization import (
    NormalizationSettings,
    apply_name_fallback,
    clean_phone_number,
    detect_phone_in_handle,
    extract_draft,
    promote_name_to_handle,
    repair_draft,
    strip_handle_decoration,
)

SETTINGS = NormalizationSettings()


def _single(row, **kwargs):
    leads = normalize_rows([row], **kwargs)
    assert len(leads) == 1
    return leads[0]


def test_clean_phone_number_strips_formatting():
    assert clean_phone_number("+55 (11) 98765-4321") == "5511987654321"
    assert clean_phone_number(5511987654321) == "5511987654321"
    assert clean_phone_number(5511987654321.0) == "5511987654321"


def test_clean_phone_number_is_total():
    assert clean_phone_number(None) is None
    assert clean_phone_number("") is None
    assert clean_phone_number(float("nan")) is None
    assert clean_phone_number("abc") is None
    assert clean_phone_number(["1234567890"]) is None
    assert clean_phone_number({"phone": 1}) is None


def test_clean_phone_number_threshold_is_configurable():
    assert clean_phone_number("98765432") is None
    assert clean_phone_number("98765432", min_digits=8) == "98765432"
    assert clean_phone_number("1" * 16) is None
    assert clean_phone_number("1" * 16, max_digits=0) == "1" * 16


def test_clean_phone_number_idempotent_on_clean_input():
    for value in ("5511987654321", "11987654321", "14155552671"):
        assert clean_phone_number(value) == value
        assert clean_phone_number(clean_phone_number(value)) == value


def test_phone_in_handle_reclassified():
    lead = _single({"instagram": "5511987654321", "telefone": ""})
    assert lead.username == ""
    assert lead.phone == "5511987654321"
    assert lead.original_phone == ""
    assert lead.name == "Lead sem nome"


def test_phone_in_handle_does_not_override_existing_phone():
    row = {"name": "Ana Souza", "username": "@55 11 91234-5678", "phone": "5521998887777"}
    lead = _single(row)
    assert lead.username == ""
    assert lead.phone == "5521998887777"
    assert lead.original_phone == "5521998887777"


def test_phone_in_handle_keeps_extracted_original_phone():
    lead = _single({"telefone": "12-34", "instagram": "5511987654321"})
    assert lead.username == ""
    assert lead.phone == "5511987654321"
    assert lead.original_phone == "12-34"


@pytest.mark.parametrize(
    "handle",
    [
        "11 98765-4321",  # digits without letters
        "@5511abc",  # country prefix
        "9876543a21",  # mostly digits
    ],
)
def test_looks_like_phone_criteria(handle):
    assert norm.looks_like_phone(handle, SETTINGS) is True


@pytest.mark.parametrize("handle", ["", "joao.lima", "ana2024", "12345", "user_12345"])
def test_looks_like_phone_rejects_handles(handle):
    assert norm.looks_like_phone(handle, SETTINGS) is False


def test_handle_discarded_even_when_phone_unrecoverable():
    draft = LeadDraft(name="Bia", username="@5512")
    repaired = detect_phone_in_handle(draft, SETTINGS)
    assert repaired.username == ""
    assert repaired.phone is None
    assert repaired.original_phone == ""


def test_name_is_handle_promotion_chains_into_name_fallback():
    lead = _single({"name": "maria.fitness22"})
    assert lead.username == "maria.fitness22"
    assert lead.name == "maria.fitness22"


def test_name_promotion_needs_handle_shape_and_length():
    assert promote_name_to_handle(LeadDraft(name="Maria Silva"), SETTINGS).username == ""
    assert promote_name_to_handle(LeadDraft(name="ab"), SETTINGS).username == ""
    assert promote_name_to_handle(LeadDraft(name="ana-b"), SETTINGS).username == ""
    kept = promote_name_to_handle(LeadDraft(name="ana_b", username="other"), SETTINGS)
    assert kept.username == "other"


def test_promoted_handle_is_cleaned_after_phone_check():
    # A phone-looking handle is dropped first, then the name is promoted.
    lead = _single({"name": "joao_lima", "username": "11987654321"})
    assert lead.username == "joao_lima"
    assert lead.phone == "11987654321"


def test_handle_url_stripping():
    lead = _single({"name": "João Lima", "username": "https://instagram.com/joaolima/?hl=en"})
    assert lead.username == "joaolima"
    assert lead.name == "João Lima"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("@joaolima", "joaolima"),
        ("www.instagram.com/joaolima", "joaolima"),
        ("http://www.Instagram.com/joaolima/", "joaolima"),
        ("instagram.com/joaolima?igsh=abc", "joaolima"),
        ("joaolima/", "joaolima"),
        ("https://m.instagram.com/ana.fit/", "ana.fit"),
        ("@https://instagram.com/bia", "bia"),
        ("https://www.facebook.com/cid", "cid"),
    ],
)
def test_strip_handle_decoration(raw, expected):
    assert strip_handle_decoration(LeadDraft(username=raw), SETTINGS).username == expected


def test_normalized_handles_never_carry_a_url_scheme():
    rows = [
        {"nome": "Ana Fit", "instagram": "https://m.instagram.com/ana.fit/"},
        {"nome": "Bia Lopes", "instagram": "@https://instagram.com/bia"},
        {"nome": "Cid Moura", "instagram": "https://www.facebook.com/cid"},
    ]
    leads = normalize_rows(rows)
    assert [lead.username for lead in leads] == ["ana.fit", "bia", "cid"]
    assert all("://" not in lead.username for lead in leads)


def test_strip_handle_decoration_uses_configured_domains():
    settings = NormalizationSettings(social_domains=["instagram.com", "tiktok.com"])
    draft = LeadDraft(username="https://www.tiktok.com/@joaolima")
    assert strip_handle_decoration(draft, settings).username == "joaolima"


def test_name_fallback_sentinel_and_placeholder():
    assert apply_name_fallback(LeadDraft(name="Sem Nome", username="bia"), SETTINGS).name == "bia"
    assert apply_name_fallback(LeadDraft(name=""), SETTINGS).name == "Lead sem nome"
    assert apply_name_fallback(LeadDraft(name="Bia", username="x"), SETTINGS).name == "Bia"


def test_repair_chain_order_is_explicit():
    assert norm.REPAIR_CHAIN == (
        detect_phone_in_handle,
        promote_name_to_handle,
        strip_handle_decoration,
        apply_name_fallback,
    )
    draft = LeadDraft(name="Sem Nome", username="@maria.fit/")
    assert repair_draft(draft, SETTINGS) == LeadDraft(name="maria.fit", username="maria.fit")


def test_split_field_phone_recovery():
    lead = _single({"nome": "Carla", "country_code": "55", "local_number": "11987654321"})
    assert lead.phone == "5511987654321"
    assert lead.original_phone == "5511987654321"


def test_split_field_recovery_from_scraper_columns():
    row = {
        "full_name": "Carla",
        "public_phone_country_code": 55,
        "public_phone_number": 11987654321.0,
    }
    mapping = RoleMapping(name="full_name")
    draft = extract_draft(row, mapping, SETTINGS)
    assert draft.original_phone == "5511987654321"
    assert draft.phone == "5511987654321"


def test_split_field_recovery_when_country_code_is_mapped_as_phone():
    row = {
        "full_name": "Carla",
        "public_phone_country_code": "55",
        "public_phone_number": "11987654321",
    }
    lead = _single(row)
    assert lead.phone == "5511987654321"
    assert lead.original_phone == "5511987654321"


def test_split_field_recovery_only_when_direct_phone_empty():
    row = {"phone": "5521998887777", "country_code": "55", "local_number": "11987654321"}
    draft = extract_draft(row, RoleMapping(phone="phone"), SETTINGS)
    assert draft.phone == "5521998887777"


def test_original_phone_kept_when_invalid():
    lead = _single({"name": "Rui", "telefone": "12-34"})
    assert lead.phone is None
    assert lead.original_phone == "12-34"


def test_original_phone_keeps_numeric_type():
    lead = _single({"name": "Rui", "celular": 5511987654321})
    assert lead.original_phone == 5511987654321
    assert lead.phone == "5511987654321"


def test_unmapped_roles_fall_back_to_literal_keys():
    row = {"usuario": "@bia.store", "nome": None}
    draft = extract_draft(row, RoleMapping(), SETTINGS)
    assert draft.username == "@bia.store"
    assert draft.name == ""


def test_missing_values_coerce_to_empty_strings():
    row = {"name": math.nan, "username": None, "phone": float("nan")}
    lead = _single(row)
    assert lead.name == "Lead sem nome"
    assert lead.username == ""
    assert lead.phone is None


def test_empty_batch_skips_inference(monkeypatch):
    def _boom(*args, **kwargs):
        raise AssertionError("inference should not run")

    monkeypatch.setattr(norm, "infer_role_mapping", _boom)
    assert normalize_rows([]) == []


def test_malformed_rows_still_yield_leads():
    rows = ["not a record", None, {"name": "Ana", "phone": "11 98765 4321"}]
    leads = normalize_rows(rows)
    assert len(leads) == 3
    assert leads[0].name == "Lead sem nome"
    assert leads[1].name == "Lead sem nome"
    assert leads[2].name == "Ana"
    assert leads[2].phone == "11987654321"


def test_batch_ids_unique_and_fresh_per_batch():
    rows = [{"name": f"lead{i}"} for i in range(5)]
    first = normalize_rows(rows)
    second = normalize_rows(rows)
    first_ids = [lead.id for lead in first]
    assert len(set(first_ids)) == len(first_ids)
    assert not set(first_ids) & {lead.id for lead in second}
    assert [lead.name for lead in first] == [f"lead{i}" for i in range(5)]
    assert all(lead.status == "pending" for lead in first)


def test_invariants_hold_across_messy_batch():
    rows = [
        {"Nome": "", "Instagram": "@5511987654321", "WhatsApp": None},
        {"Nome": "Sem Nome", "Instagram": "https://instagram.com/loja.x/?hl=pt", "WhatsApp": ""},
        {"Nome": "   ", "Instagram": "", "WhatsApp": "(11) 9 8765-4321"},
        {"Nome": "Paula", "Instagram": "@@paula//", "WhatsApp": "abc"},
        {"Nome": None, "Instagram": None, "WhatsApp": None},
    ]
    leads = normalize_rows(rows)
    assert leads[0].phone == "5511987654321"
    assert leads[1].name == "loja.x"
    assert leads[2].phone == "11987654321"
    for lead in leads:
        assert lead.name.strip()
        assert not lead.username.startswith("@")
        assert "://" not in lead.username
        assert "?" not in lead.username
        assert not lead.username.endswith("/")
        assert lead.phone is None or lead.phone.isdigit()


def test_settings_from_config():
    from leads_etl.config_loader import NormalizationConfig

    settings = NormalizationSettings.from_config(
        NormalizationConfig(min_phone_digits=8, phone_country_prefix="351")
    )
    assert settings.min_phone_digits == 8
    assert settings.phone_prefix_pattern().match("@351912345678")


def test_series_rows_are_inferred_and_normalized():
    rows = [pd.Series({"nome": "Ana Souza", "whatsapp": "11987654321"})]
    lead = normalize_rows(rows)[0]
    assert lead.name == "Ana Souza"
    assert lead.phone == "11987654321"
