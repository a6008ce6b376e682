from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import quote

import phonenumbers  # type: ignore

from .config_loader import DEFAULT_MESSAGE_TEMPLATE
from .models import Lead

logger = logging.getLogger(__name__)

NAME_PLACEHOLDER_RE = re.compile(r"\{\s*(nome|name)\s*\}", re.IGNORECASE)


def render_message(template: str, name: str) -> str:
    return NAME_PLACEHOLDER_RE.sub(lambda _match: name or "", template or "")


def whatsapp_link(phone: Optional[str], template: str, name: str) -> str:
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        return ""
    message = render_message(template, name)
    if not message:
        return f"https://wa.me/{digits}"
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"


def instagram_link(username: str) -> str:
    handle = (username or "").strip().lstrip("@")
    return f"https://instagram.com/{handle}" if handle else ""


def format_phone_display(phone: Optional[str], default_region: str = "BR") -> str:
    """Human-friendly rendering of a canonical phone; never used for links."""
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        return ""
    for candidate, region in ((f"+{digits}", None), (digits, default_region)):
        try:
            parsed = phonenumbers.parse(candidate, region)
        except phonenumbers.NumberParseException:
            continue
        if phonenumbers.is_possible_number(parsed):
            return phonenumbers.format_number(
                parsed, phonenumbers.PhoneNumberFormat.INTERNATIONAL
            )
    logger.debug("phonenumbers could not format %s", digits)
    return f"+{digits}"


def lead_links(
    lead: Lead,
    template: str = DEFAULT_MESSAGE_TEMPLATE,
    default_region: str = "BR",
) -> dict:
    return {
        "whatsapp_link": whatsapp_link(lead.phone, template, lead.name),
        "instagram_link": instagram_link(lead.username),
        "phone_display": format_phone_display(lead.phone, default_region),
    }


__all__ = [
    "format_phone_display",
    "instagram_link",
    "lead_links",
    "render_message",
    "whatsapp_link",
]
