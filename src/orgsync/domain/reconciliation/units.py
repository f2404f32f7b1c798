"""Reconcile the units of one company against persisted rows."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from orgsync.domain.model import Collection
from orgsync.domain.ports.store import StoreError

from .contracts import Failure, FailureKind, UnitSyncResult, role_key, row_id
from .identity import Persisted, classify_identifier, client_key

if TYPE_CHECKING:
    from collections.abc import Sequence

    from orgsync.domain.model import UnitDraft
    from orgsync.domain.ports.store import EntityStore

    from .cascade import CascadeDeletionPlanner
    from .contracts import ReferenceMaps
    from .identity import PersistedId

log = logging.getLogger(__name__)


def synchronize_units(
    store: EntityStore,
    *,
    org_key: str,
    units: Sequence[UnitDraft],
    references: ReferenceMaps,
    planner: CascadeDeletionPlanner,
) -> UnitSyncResult:
    """Delete units missing from ``units``, then insert or update the rest.

    The deletion pass always runs first so a persisted id that is still in the
    incoming tree can never be scheduled for deletion after being written.
    """

    result = UnitSyncResult()
    owned = _delete_removed_units(
        store, org_key=org_key, units=units, planner=planner, result=result
    )
    for unit in units:
        _upsert_unit(
            store, org_key=org_key, unit=unit, owned=owned, references=references, result=result
        )
    log.info(
        "Units reconciled for %s: written=%s, deleted=%s, failures=%s",
        org_key,
        len(result.unit_ids) + len(result.unkeyed_ids),
        len(result.deleted),
        len(result.failures),
    )
    return result


def _delete_removed_units(
    store: EntityStore,
    *,
    org_key: str,
    units: Sequence[UnitDraft],
    planner: CascadeDeletionPlanner,
    result: UnitSyncResult,
) -> set[PersistedId] | None:
    try:
        rows = store.find_many(Collection.UNIT, {"org_key": org_key})
    except StoreError as exc:
        log.warning("Could not list units of %s, skipping deletions: %s", org_key, exc)
        result.failures.append(
            Failure(entity_kind=Collection.UNIT, identifier=org_key, reason=str(exc))
        )
        return None

    persisted = [row_id(row) for row in rows]
    kept = {
        identity.id
        for identity in (classify_identifier(unit.ref) for unit in units)
        if isinstance(identity, Persisted)
    }
    for unit_id in persisted:
        if unit_id in kept:
            continue
        report = planner.delete_unit(unit_id)
        result.failures.extend(report.failures)
        if report.deleted:
            result.deleted.append(unit_id)
    return set(persisted)


def _upsert_unit(
    store: EntityStore,
    *,
    org_key: str,
    unit: UnitDraft,
    owned: set[PersistedId] | None,
    references: ReferenceMaps,
    result: UnitSyncResult,
) -> None:
    key = client_key(unit.ref)
    name = unit.name.strip()
    label = key or name
    if not name:
        result.failures.append(
            Failure(entity_kind=Collection.UNIT, identifier=key, reason="unit name is required")
        )
        return

    fields: dict[str, object] = {
        "name": name,
        "sector_ids": _sector_ids(unit, references, result),
        "role_ids": _role_ids(unit, references, result),
    }
    identity = classify_identifier(unit.ref)
    try:
        if isinstance(identity, Persisted):
            if owned is not None and identity.id not in owned:
                result.failures.append(
                    Failure(
                        entity_kind=Collection.UNIT,
                        identifier=label,
                        reason=f"unit {identity.id} not found in company {org_key}",
                    )
                )
                return
            if not store.update(Collection.UNIT, identity.id, fields):
                result.failures.append(
                    Failure(
                        entity_kind=Collection.UNIT,
                        identifier=label,
                        reason=f"unit {identity.id} not found",
                    )
                )
                return
            unit_id: PersistedId = identity.id
        else:
            unit_id = row_id(store.insert(Collection.UNIT, {"org_key": org_key, **fields}))
    except StoreError as exc:
        log.warning("Could not save unit %r (%s): %s", name, key, exc)
        result.failures.append(
            Failure(entity_kind=Collection.UNIT, identifier=label, reason=str(exc))
        )
        return
    if key:
        result.unit_ids[key] = unit_id
    else:
        result.unkeyed_ids.append(unit_id)


def _sector_ids(
    unit: UnitDraft, references: ReferenceMaps, result: UnitSyncResult
) -> list[PersistedId]:
    ids: list[PersistedId] = []
    for name in unit.sectors:
        sector_id = references.sector_id(name)
        if sector_id is None:
            _unresolved(result, unit, f"sector {name!r}")
        elif sector_id not in ids:
            ids.append(sector_id)
    return ids


def _role_ids(
    unit: UnitDraft, references: ReferenceMaps, result: UnitSyncResult
) -> list[PersistedId]:
    ids: list[PersistedId] = []
    for role in unit.roles:
        role_id = references.role_id(role.sector, role.name)
        if role_id is None:
            _unresolved(result, unit, f"role {role_key(role.sector, role.name)!r}")
        elif role_id not in ids:
            ids.append(role_id)
    return ids


def _unresolved(result: UnitSyncResult, unit: UnitDraft, what: str) -> None:
    log.warning("Dropping unresolved %s from unit %r", what, unit.name)
    result.failures.append(
        Failure(
            entity_kind=Collection.UNIT,
            identifier=client_key(unit.ref) or unit.name,
            reason=f"{what} is not resolved",
            kind=FailureKind.UNRESOLVED_REFERENCE,
        )
    )
