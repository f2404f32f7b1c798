"""Reconcile the collaborators of one company's units."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from orgsync.domain.model import Collection
from orgsync.domain.ports.store import StoreError

from .contracts import CollaboratorSyncResult, Failure, FailureKind, row_id
from .identity import Persisted, classify_identifier, client_key

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from orgsync.domain.model import CollaboratorDraft
    from orgsync.domain.ports.store import EntityStore

    from .contracts import ReferenceMaps
    from .identity import PersistedId

log = logging.getLogger(__name__)

# Columns owned by the synchronizer; opaque fields may not override them.
RESERVED_FIELDS: Final[frozenset[str]] = frozenset(
    {"id", "unit_id", "sector_id", "role_id", "name"}
)


def synchronize_collaborators(
    store: EntityStore,
    *,
    org_key: str,
    collaborators: Sequence[CollaboratorDraft],
    unit_ids: Mapping[str, PersistedId],
    references: ReferenceMaps,
    defaults: Mapping[str, object] | None = None,
) -> CollaboratorSyncResult:
    """Delete collaborators missing from the tree, then insert or update the rest."""

    result = CollaboratorSyncResult()
    try:
        org_unit_ids = [
            row_id(row) for row in store.find_many(Collection.UNIT, {"org_key": org_key})
        ]
    except StoreError as exc:
        log.warning("Could not list units of %s: %s", org_key, exc)
        result.failures.append(
            Failure(entity_kind=Collection.UNIT, identifier=org_key, reason=str(exc))
        )
        org_unit_ids = list(dict.fromkeys(unit_ids.values()))
        owned = None
    else:
        owned = _delete_removed_collaborators(
            store,
            org_unit_ids=org_unit_ids,
            collaborators=collaborators,
            result=result,
        )

    known_units = set(org_unit_ids)
    for collaborator in collaborators:
        _upsert_collaborator(
            store,
            collaborator=collaborator,
            unit_id=_resolve_unit(collaborator.unit_ref, unit_ids, known_units),
            owned=owned,
            references=references,
            defaults=defaults or {},
            result=result,
        )
    log.info(
        "Collaborators reconciled for %s: written=%s, deleted=%s, failures=%s",
        org_key,
        len(result.collaborator_ids) + len(result.unkeyed_ids),
        len(result.deleted),
        len(result.failures),
    )
    return result


def normalize_fields(fields: Mapping[str, object]) -> dict[str, object]:
    """Drop reserved keys and turn blank strings into ``None``."""

    normalized: dict[str, object] = {}
    for name, value in fields.items():
        if name in RESERVED_FIELDS:
            continue
        if isinstance(value, str) and not value.strip():
            value = None
        normalized[name] = value
    return normalized


def _delete_removed_collaborators(
    store: EntityStore,
    *,
    org_unit_ids: list[PersistedId],
    collaborators: Sequence[CollaboratorDraft],
    result: CollaboratorSyncResult,
) -> set[PersistedId] | None:
    if not org_unit_ids:
        return set()
    try:
        rows = store.find_many(Collection.COLLABORATOR, {"unit_id": org_unit_ids})
    except StoreError as exc:
        log.warning("Could not list collaborators, skipping deletions: %s", exc)
        result.failures.append(
            Failure(entity_kind=Collection.COLLABORATOR, identifier="*", reason=str(exc))
        )
        return None

    kept = {
        identity.id
        for identity in (classify_identifier(item.ref) for item in collaborators)
        if isinstance(identity, Persisted)
    }
    for collaborator_id in (row_id(row) for row in rows):
        if collaborator_id in kept:
            continue
        try:
            store.delete(Collection.COLLABORATOR, {"id": collaborator_id})
        except StoreError as exc:
            log.warning("Could not delete collaborator %s: %s", collaborator_id, exc)
            result.failures.append(
                Failure(
                    entity_kind=Collection.COLLABORATOR,
                    identifier=str(collaborator_id),
                    reason=str(exc),
                )
            )
            continue
        result.deleted.append(collaborator_id)
    return {row_id(row) for row in rows}


def _resolve_unit(
    unit_ref: object,
    unit_ids: Mapping[str, PersistedId],
    known_units: set[PersistedId],
) -> PersistedId | None:
    key = client_key(unit_ref)
    if not key:
        return None
    mapped = unit_ids.get(key)
    if mapped is not None:
        return mapped
    identity = classify_identifier(unit_ref)
    if isinstance(identity, Persisted) and identity.id in known_units:
        return identity.id
    return None


def _upsert_collaborator(
    store: EntityStore,
    *,
    collaborator: CollaboratorDraft,
    unit_id: PersistedId | None,
    owned: set[PersistedId] | None,
    references: ReferenceMaps,
    defaults: Mapping[str, object],
    result: CollaboratorSyncResult,
) -> None:
    key = client_key(collaborator.ref)
    name = collaborator.name.strip()
    if not name:
        _reject(result, key, "collaborator name is required")
        return
    label = key or name
    if unit_id is None:
        unit_key = client_key(collaborator.unit_ref)
        reason = "collaborator has no unit"
        if unit_key:
            reason = f"unit {unit_key!r} is not part of this save"
        _reject(result, label, reason)
        return

    values = normalize_fields(collaborator.fields)
    values.update(
        name=name,
        unit_id=unit_id,
        sector_id=_sector_reference(result, label, collaborator.sector, references),
        role_id=_role_reference(result, label, collaborator, references),
    )

    identity = classify_identifier(collaborator.ref)
    try:
        if isinstance(identity, Persisted):
            if owned is not None and identity.id not in owned:
                _reject(result, label, f"collaborator {identity.id} is not part of this company")
                return
            if not store.update(Collection.COLLABORATOR, identity.id, values):
                _reject(result, label, f"collaborator {identity.id} not found")
                return
            collaborator_id: PersistedId = identity.id
        else:
            for column, default in defaults.items():
                if values.get(column) is None:
                    values[column] = default
            collaborator_id = row_id(store.insert(Collection.COLLABORATOR, values))
    except StoreError as exc:
        log.warning("Could not save collaborator %r (%s): %s", name, key, exc)
        _reject(result, label, str(exc))
        return
    if key:
        result.collaborator_ids[key] = collaborator_id
    else:
        result.unkeyed_ids.append(collaborator_id)


def _sector_reference(
    result: CollaboratorSyncResult,
    key: str,
    name: str | None,
    references: ReferenceMaps,
) -> PersistedId | None:
    if not name or not name.strip():
        return None
    sector_id = references.sector_id(name)
    if sector_id is None:
        _unresolved(result, key, f"sector {name!r}")
    return sector_id


def _role_reference(
    result: CollaboratorSyncResult,
    key: str,
    collaborator: CollaboratorDraft,
    references: ReferenceMaps,
) -> PersistedId | None:
    if not collaborator.role or not collaborator.role.strip():
        return None
    role_id = references.role_id(collaborator.sector, collaborator.role)
    if role_id is None:
        _unresolved(result, key, f"role {collaborator.role!r} in sector {collaborator.sector!r}")
    return role_id


def _unresolved(result: CollaboratorSyncResult, key: str, what: str) -> None:
    log.warning("Collaborator %s: %s is not resolved, storing null", key, what)
    result.failures.append(
        Failure(
            entity_kind=Collection.COLLABORATOR,
            identifier=key,
            reason=f"{what} is not resolved",
            kind=FailureKind.UNRESOLVED_REFERENCE,
        )
    )


def _reject(result: CollaboratorSyncResult, key: str, reason: str) -> None:
    log.warning("Collaborator %s rejected: %s", key, reason)
    result.failures.append(
        Failure(entity_kind=Collection.COLLABORATOR, identifier=key, reason=reason)
    )
