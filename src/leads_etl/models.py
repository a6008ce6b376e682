from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

ROLE_NAME = "name"
ROLE_HANDLE = "handle"
ROLE_PHONE = "phone"
ROLES = (ROLE_NAME, ROLE_HANDLE, ROLE_PHONE)

STATUS_PENDING = "pending"
STATUS_PROSPECT = "prospect"
STATUS_CONTACTED = "contacted"
STATUS_SKIPPED = "skipped"
LEAD_STATUSES = (STATUS_PENDING, STATUS_PROSPECT, STATUS_CONTACTED, STATUS_SKIPPED)


@dataclass(frozen=True)
class RoleMapping:
    """Source column chosen for each role, ``None`` when nothing matched."""

    name: Optional[str] = None
    handle: Optional[str] = None
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"name": self.name, "handle": self.handle, "phone": self.phone}


@dataclass(frozen=True)
class LeadDraft:
    """In-progress record threaded through the repair chain."""

    name: str = ""
    username: str = ""
    phone: Optional[str] = None
    original_phone: Any = ""

    def replace(self, **changes: Any) -> "LeadDraft":
        return replace(self, **changes)


@dataclass(frozen=True)
class Lead:
    id: str
    name: str
    username: str = ""
    phone: Optional[str] = None
    original_phone: Any = ""
    status: str = STATUS_PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "phone": self.phone,
            "original_phone": self.original_phone,
            "status": self.status,
        }

    def with_status(self, status: str) -> "Lead":
        if status not in LEAD_STATUSES:
            raise ValueError(f"Unknown lead status: {status!r}")
        return replace(self, status=status)
