"""Orchestrator for the reconciliation subsystem.

A save runs the stages strictly in foreign-key order:

1) upsert the company row (fatal on failure)
2) resolve sectors and roles by natural key
3) synchronize units (deletions first, with cascade)
4) synchronize collaborators (deletions first)
5) write the company's reference sets and counters

Failures after step 1 are collected and returned with the result. In
``BEST_EFFORT`` mode every completed stage is committed; in ``ATOMIC`` mode the
run commits once, and only when no blocking failure was recorded.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from orgsync.domain.model import Collection, TransactionMode, UnitDraft
from orgsync.domain.ports.store import StoreError

from .cascade import CascadeDeletionPlanner
from .collaborators import synchronize_collaborators
from .contracts import DeletionResult, Failure, ReconciliationResult, row_id
from .errors import FatalStoreError
from .identity import Pending, classify_identifier
from .references import resolve_references
from .units import synchronize_units

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from orgsync.domain.model import CollaboratorDraft, CompanyDraft
    from orgsync.domain.ports.store import EntityStore
    from orgsync.domain.ports.unit_of_work import ReconciliationUnitOfWork

    from .identity import PersistedId

log = logging.getLogger(__name__)

DEFAULT_COMPANY_STATUS = "active"

# Columns the engine maintains itself; display fields may not override them.
COMPANY_MANAGED_FIELDS = frozenset(
    {"id", "org_key", "owner_id", "sector_ids", "role_ids", "unit_count", "collaborator_count"}
)


@dataclass(slots=True)
class ReconciliationEngine:
    """Run company saves and deletes against a unit of work."""

    unit_of_work_factory: Callable[[], ReconciliationUnitOfWork]
    transaction_mode: TransactionMode = TransactionMode.BEST_EFFORT
    default_unit_name: str | None = None
    collaborator_defaults: Mapping[str, object] = field(default_factory=dict[str, object])

    def reconcile(
        self,
        company: CompanyDraft,
        units: Sequence[UnitDraft],
        collaborators: Sequence[CollaboratorDraft],
    ) -> ReconciliationResult:
        """Persist the edited organization tree and report what changed."""

        with self.unit_of_work_factory() as uow:
            store = uow.repositories.store
            try:
                company_id, org_key, created = _upsert_company(store, company)
            except StoreError as exc:
                uow.rollback()
                log.error("Company upsert failed, aborting reconciliation: %s", exc)
                raise FatalStoreError(f"could not save company: {exc}") from exc
            self._checkpoint(uow)

            if created and not units and self.default_unit_name:
                units = [UnitDraft(ref=None, name=self.default_unit_name)]

            result = ReconciliationResult(company_id=company_id, org_key=org_key)

            references = resolve_references(store, sectors=company.sectors, roles=company.roles)
            result.references = references.maps
            result.failures.extend(references.failures)
            self._checkpoint(uow)

            unit_sync = synchronize_units(
                store,
                org_key=org_key,
                units=units,
                references=references.maps,
                planner=CascadeDeletionPlanner(store),
            )
            result.unit_ids = unit_sync.unit_ids
            result.unkeyed_unit_ids = unit_sync.unkeyed_ids
            result.deleted_units = unit_sync.deleted
            result.failures.extend(unit_sync.failures)
            self._checkpoint(uow)

            collaborator_sync = synchronize_collaborators(
                store,
                org_key=org_key,
                collaborators=collaborators,
                unit_ids=unit_sync.unit_ids,
                references=references.maps,
                defaults=self.collaborator_defaults,
            )
            result.collaborator_ids = collaborator_sync.collaborator_ids
            result.unkeyed_collaborator_ids = collaborator_sync.unkeyed_ids
            result.deleted_collaborators = collaborator_sync.deleted
            result.failures.extend(collaborator_sync.failures)

            _write_company_summary(store, result)
            self._checkpoint(uow)

            result.committed = self._finish(uow, result.failures)

        log.info(
            "Reconciled company %s (%s): units=%s, collaborators=%s, failures=%s, committed=%s",
            result.company_id,
            result.org_key,
            result.unit_count,
            result.collaborator_count,
            len(result.failures),
            result.committed,
        )
        return result

    def cascade_delete(
        self,
        company_id: PersistedId,
        *,
        owner_id: str | None = None,
    ) -> DeletionResult:
        """Delete a company with its forms, collaborators and units."""

        with self.unit_of_work_factory() as uow:
            report = CascadeDeletionPlanner(uow.repositories.store).delete_company(
                company_id, owner_id=owner_id
            )
            if report.deleted or self.transaction_mode is TransactionMode.BEST_EFFORT:
                committed = self._finish(uow, report.failures)
            else:
                uow.rollback()
                committed = False
        return DeletionResult(
            company_id=company_id,
            deleted=report.deleted and committed,
            steps=report.steps,
            failures=report.failures,
            committed=committed,
        )

    def _checkpoint(self, uow: ReconciliationUnitOfWork) -> None:
        if self.transaction_mode is TransactionMode.BEST_EFFORT:
            uow.commit()

    def _finish(self, uow: ReconciliationUnitOfWork, failures: Sequence[Failure]) -> bool:
        if self.transaction_mode is TransactionMode.ATOMIC and any(
            failure.is_blocking for failure in failures
        ):
            log.warning("Rolling back atomic run after %s failure(s)", len(failures))
            uow.rollback()
            return False
        uow.commit()
        return True


def _upsert_company(store: EntityStore, draft: CompanyDraft) -> tuple[PersistedId, str, bool]:
    fields = {
        name: value for name, value in draft.fields.items() if name not in COMPANY_MANAGED_FIELDS
    }
    identity = classify_identifier(draft.ref)
    if isinstance(identity, Pending):
        row = store.insert(
            Collection.COMPANY,
            {
                "status": DEFAULT_COMPANY_STATUS,
                **fields,
                "org_key": draft.org_key or str(uuid.uuid4()),
                "owner_id": draft.owner_id,
            },
        )
        log.info("Created company %s with org key %s", row["id"], row["org_key"])
        return row_id(row), str(row["org_key"]), True

    company_filter: dict[str, object] = {"id": identity.id}
    if draft.owner_id is not None:
        company_filter["owner_id"] = draft.owner_id
    existing = store.find_one(Collection.COMPANY, company_filter)
    if existing is None:
        raise StoreError(Collection.COMPANY, f"{identity.id} not found or not authorized")
    if fields and not store.update(Collection.COMPANY, identity.id, fields):
        raise StoreError(Collection.COMPANY, f"{identity.id} was not updated")
    return identity.id, str(existing["org_key"]), False


def _write_company_summary(store: EntityStore, result: ReconciliationResult) -> None:
    """Store the resolved reference ids and the number of rows the company now owns."""

    try:
        unit_ids = [
            row_id(row) for row in store.find_many(Collection.UNIT, {"org_key": result.org_key})
        ]
        collaborators = (
            store.find_many(Collection.COLLABORATOR, {"unit_id": unit_ids}) if unit_ids else []
        )
        result.unit_count = len(unit_ids)
        result.collaborator_count = len(collaborators)
        summary = {
            "sector_ids": list(dict.fromkeys(result.references.sector_ids.values())),
            "role_ids": list(dict.fromkeys(result.references.role_ids.values())),
            "unit_count": result.unit_count,
            "collaborator_count": result.collaborator_count,
        }
        store.update(Collection.COMPANY, result.company_id, summary)
    except StoreError as exc:
        log.warning("Could not update summary of company %s: %s", result.company_id, exc)
        result.failures.append(
            Failure(
                entity_kind=Collection.COMPANY,
                identifier=str(result.company_id),
                reason=str(exc),
            )
        )
