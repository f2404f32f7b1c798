"""Client payload adapter package."""

from __future__ import annotations

from .schema import (
    CollaboratorPayload,
    CompanyPayload,
    OrganizationPayload,
    RoleEntry,
    SectorEntry,
    UnitPayload,
)
from .translator import OrganizationDrafts, parse_organization, translate_organization

__all__ = [
    "CollaboratorPayload",
    "CompanyPayload",
    "OrganizationDrafts",
    "OrganizationPayload",
    "RoleEntry",
    "SectorEntry",
    "UnitPayload",
    "parse_organization",
    "translate_organization",
]
