"""Status workflow and read-only queries over a batch of leads.

All state (the leads, search text, filter and sort choices) is owned by the
caller and passed in; nothing here mutates its arguments.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

from .models import LEAD_STATUSES, STATUS_CONTACTED, STATUS_PROSPECT, Lead

FILTER_ALL = "all"
FILTER_WITH_PHONE = "with_phone"
FILTER_MODES = (FILTER_ALL, FILTER_WITH_PHONE) + LEAD_STATUSES

SORT_KEYS = ("input", "name", "username", "status")


@dataclass(frozen=True)
class LeadStats:
    total: int
    valid_phones: int
    contacted: int
    prospects: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "valid_phones": self.valid_phones,
            "contacted": self.contacted,
            "prospects": self.prospects,
        }


def update_status(leads: Sequence[Lead], lead_id: str, status: str) -> List[Lead]:
    if status not in LEAD_STATUSES:
        raise ValueError(f"Unknown lead status: {status!r}")
    return [lead.with_status(status) if lead.id == lead_id else lead for lead in leads]


def _matches_search(lead: Lead, needle: str) -> bool:
    return needle in lead.name.lower() or needle in lead.username.lower()


def _matches_filter(lead: Lead, filter_mode: str) -> bool:
    if filter_mode == FILTER_ALL:
        return True
    if filter_mode == FILTER_WITH_PHONE:
        return lead.phone is not None
    return lead.status == filter_mode


def query_leads(
    leads: Sequence[Lead],
    search: str = "",
    filter_mode: str = FILTER_ALL,
    sort_key: str = "input",
    descending: bool = False,
) -> List[Lead]:
    """Filter then sort; the sort is stable so ties keep input order."""
    if filter_mode not in FILTER_MODES:
        raise ValueError(f"Unknown filter mode: {filter_mode!r}")
    if sort_key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort_key!r}")

    needle = (search or "").strip().lower()
    selected = [
        lead
        for lead in leads
        if _matches_filter(lead, filter_mode) and (not needle or _matches_search(lead, needle))
    ]
    if sort_key == "input":
        return list(reversed(selected)) if descending else selected
    if sort_key == "status":
        return sorted(
            selected, key=lambda lead: LEAD_STATUSES.index(lead.status), reverse=descending
        )
    return sorted(
        selected, key=lambda lead: getattr(lead, sort_key).casefold(), reverse=descending
    )


def lead_stats(leads: Sequence[Lead]) -> LeadStats:
    return LeadStats(
        total=len(leads),
        valid_phones=sum(1 for lead in leads if lead.phone),
        contacted=sum(1 for lead in leads if lead.status == STATUS_CONTACTED),
        prospects=sum(1 for lead in leads if lead.status == STATUS_PROSPECT),
    )


__all__ = [
    "FILTER_MODES",
    "LeadStats",
    "SORT_KEYS",
    "lead_stats",
    "query_leads",
    "update_status",
]
