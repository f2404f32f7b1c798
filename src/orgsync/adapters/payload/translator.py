"""Translate organization payloads into reconciliation drafts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from orgsync.domain.model import (
    CollaboratorDraft,
    CompanyDraft,
    RoleDraft,
    SectorDraft,
    UnitDraft,
)

from .schema import OrganizationPayload, SectorEntry

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .schema import CollaboratorPayload, CompanyPayload, RoleEntry, UnitPayload

# Keys handled through draft attributes rather than row columns
_COMPANY_IDENTITY_FIELDS = frozenset({"id", "owner_id", "org_key"})
_COLLABORATOR_LINK_FIELDS = frozenset({"id", "unit_id", "name", "sector", "role"})


@dataclass(frozen=True, slots=True, kw_only=True)
class OrganizationDrafts:
    company: CompanyDraft
    units: tuple[UnitDraft, ...]
    collaborators: tuple[CollaboratorDraft, ...]


def parse_organization(data: str | bytes | dict[str, object]) -> OrganizationPayload:
    """Validate raw JSON text or an already decoded mapping."""

    if isinstance(data, (str, bytes)):
        return OrganizationPayload.model_validate_json(data)
    return OrganizationPayload.model_validate(data)


def translate_organization(
    payload: OrganizationPayload,
    *,
    owner_id: str | None = None,
) -> OrganizationDrafts:
    """Build drafts for one company save.

    ``owner_id`` overrides the owner carried by the payload; callers that
    authenticate the request should always pass it.
    """

    return OrganizationDrafts(
        company=_company_draft(payload, owner_id=owner_id),
        units=tuple(_unit_draft(unit) for unit in payload.units),
        collaborators=tuple(_collaborator_draft(item) for item in payload.collaborators),
    )


def _company_draft(payload: OrganizationPayload, *, owner_id: str | None) -> CompanyDraft:
    company: CompanyPayload = payload.company
    fields = company.model_dump(exclude_unset=True, exclude=set(_COMPANY_IDENTITY_FIELDS))
    # names used by units are resolved with the company references
    sectors = [*payload.sectors, *(name for unit in payload.units for name in unit.sectors)]
    roles = [*payload.roles, *(role for unit in payload.units for role in unit.roles)]
    return CompanyDraft(
        ref=company.id,
        owner_id=owner_id if owner_id is not None else company.owner_id,
        org_key=company.org_key,
        fields=fields,
        sectors=tuple(_sector_draft(entry) for entry in sectors),
        roles=_role_drafts(roles),
    )


def _sector_draft(entry: str | SectorEntry) -> SectorDraft:
    if isinstance(entry, SectorEntry):
        return SectorDraft(name=entry.name, ref=entry.id)
    return SectorDraft(name=entry)


def _role_drafts(entries: Iterable[RoleEntry]) -> tuple[RoleDraft, ...]:
    return tuple(RoleDraft(name=entry.name, sector=entry.sector, ref=entry.id) for entry in entries)


def _unit_draft(unit: UnitPayload) -> UnitDraft:
    return UnitDraft(
        ref=unit.id,
        name=unit.name,
        sectors=tuple(unit.sectors),
        roles=_role_drafts(unit.roles),
    )


def _collaborator_draft(item: CollaboratorPayload) -> CollaboratorDraft:
    return CollaboratorDraft(
        ref=item.id,
        unit_ref=item.unit_id,
        name=item.name,
        sector=item.sector,
        role=item.role,
        fields=item.model_dump(exclude_unset=True, exclude=set(_COLLABORATOR_LINK_FIELDS)),
    )
