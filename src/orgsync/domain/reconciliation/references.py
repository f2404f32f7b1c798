"""Lookup-or-create of shared sectors and roles by natural key.

Sectors are keyed by name, roles by ``(name, sector)``. Both are global: any
company reusing a name reuses the row. A draft carrying a persisted id whose
new name is not taken yet renames that row in place, so everything pointing at
it keeps pointing at it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from orgsync.domain.model import Collection, RoleDraft, SectorDraft
from orgsync.domain.ports.store import StoreError

from .contracts import (
    Failure,
    FailureKind,
    ReferenceMaps,
    ReferenceResolution,
    role_key,
    row_id,
)
from .identity import Persisted, classify_identifier

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from orgsync.domain.ports.store import EntityStore

    from .identity import PersistedId

log = logging.getLogger(__name__)


def resolve_references(
    store: EntityStore,
    *,
    sectors: Iterable[SectorDraft | str],
    roles: Iterable[RoleDraft],
) -> ReferenceResolution:
    """Map every incoming sector name and role key to a row id."""

    maps = ReferenceMaps()
    failures: list[Failure] = []

    for sector in unique_sectors(sectors):
        try:
            maps.sector_ids[sector.name] = _resolve_row(
                store,
                Collection.SECTOR,
                {"name": sector.name},
                ref=sector.ref,
                maps=maps,
            )
        except StoreError as exc:
            log.warning("Could not resolve sector %r: %s", sector.name, exc)
            failures.append(
                Failure(entity_kind=Collection.SECTOR, identifier=sector.name, reason=str(exc))
            )

    for role in unique_roles(roles):
        key = role_key(role.sector, role.name)
        sector_id = maps.sector_ids.get(role.sector)
        if sector_id is None:
            log.warning("Skipping role %r: sector %r is not resolved", role.name, role.sector)
            failures.append(
                Failure(
                    entity_kind=Collection.ROLE,
                    identifier=key,
                    reason=f"sector {role.sector!r} is not resolved",
                    kind=FailureKind.UNRESOLVED_REFERENCE,
                )
            )
            continue
        try:
            maps.role_ids[key] = _resolve_row(
                store,
                Collection.ROLE,
                {"name": role.name, "sector_id": sector_id},
                ref=role.ref,
                maps=maps,
            )
        except StoreError as exc:
            log.warning("Could not resolve role %r: %s", key, exc)
            failures.append(Failure(entity_kind=Collection.ROLE, identifier=key, reason=str(exc)))

    log.info(
        "Resolved references: sectors=%s, roles=%s, created=%s, failures=%s",
        len(maps.sector_ids),
        len(maps.role_ids),
        sum(len(ids) for ids in maps.created.values()),
        len(failures),
    )
    return ReferenceResolution(maps=maps, failures=failures)


def unique_sectors(sectors: Iterable[SectorDraft | str]) -> list[SectorDraft]:
    """Deduplicate by exact name; a draft carrying an id wins over a bare name."""

    by_name: dict[str, SectorDraft] = {}
    for item in sectors:
        draft = SectorDraft(name=item) if isinstance(item, str) else item
        if not draft.name:
            continue
        current = by_name.get(draft.name)
        if current is None or (current.ref is None and draft.ref is not None):
            by_name[draft.name] = draft
    return list(by_name.values())


def unique_roles(roles: Iterable[RoleDraft]) -> list[RoleDraft]:
    by_key: dict[tuple[str, str], RoleDraft] = {}
    for draft in roles:
        if not draft.name or not draft.sector:
            continue
        key = (draft.name, draft.sector)
        current = by_key.get(key)
        if current is None or (current.ref is None and draft.ref is not None):
            by_key[key] = draft
    return list(by_key.values())


def _resolve_row(
    store: EntityStore,
    collection: Collection,
    natural_key: Mapping[str, object],
    *,
    ref: object,
    maps: ReferenceMaps,
) -> PersistedId:
    existing = store.find_one(collection, natural_key)
    if existing is not None:
        return row_id(existing)

    identity = classify_identifier(ref)
    if isinstance(identity, Persisted):
        if store.update(collection, identity.id, natural_key):
            log.info("Renamed %s %s to %s", collection, identity.id, dict(natural_key))
            return identity.id
        log.info("%s %s no longer exists; creating %s", collection, identity.id, dict(natural_key))

    new_id = row_id(store.insert(collection, natural_key))
    maps.created.setdefault(collection, []).append(new_id)
    return new_id
