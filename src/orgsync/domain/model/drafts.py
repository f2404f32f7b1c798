"""Client-edited organization tree, as handed to the reconciliation engine.

Drafts are plain values: they carry whatever identifier the client used for a
row (a persisted id, a UUID, a timestamp placeholder or an explicit
``Persisted``/``Pending`` tag) and reference shared entities by name. Nothing
here talks to persistence.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True, kw_only=True)
class SectorDraft:
    name: str
    ref: object = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RoleDraft:
    """Role identified by its natural key ``(name, sector name)``."""

    name: str
    sector: str
    ref: object = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CompanyDraft:
    ref: object = None
    owner_id: str | None = None
    org_key: str | None = None
    fields: Mapping[str, object] = field(default_factory=dict[str, object])
    sectors: tuple[SectorDraft, ...] = ()
    roles: tuple[RoleDraft, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class UnitDraft:
    ref: object
    name: str
    sectors: tuple[str, ...] = ()
    roles: tuple[RoleDraft, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class CollaboratorDraft:
    ref: object
    unit_ref: object
    name: str
    sector: str | None = None
    role: str | None = None
    fields: Mapping[str, object] = field(default_factory=dict[str, object])
