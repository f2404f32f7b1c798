"""Public domain model surface."""

from __future__ import annotations

from orgsync.domain.model.drafts import (
    CollaboratorDraft,
    CompanyDraft,
    RoleDraft,
    SectorDraft,
    UnitDraft,
)
from orgsync.domain.model.enums import Collection, TransactionMode

__all__ = [
    "CollaboratorDraft",
    "Collection",
    "CompanyDraft",
    "RoleDraft",
    "SectorDraft",
    "TransactionMode",
    "UnitDraft",
]
