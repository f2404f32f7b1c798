"""Foreign-key safe deletion of units and whole companies.

Dependents are always removed before their owner:
forms -> collaborators -> units -> company. Every step is attempted even when
an earlier one failed, so the report shows exactly what is left behind. The
planner never retries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from orgsync.domain.model import Collection
from orgsync.domain.ports.store import StoreError

from .contracts import CascadeReport, CascadeStep, Failure, FailureKind
from .errors import CascadeVerificationError

if TYPE_CHECKING:
    from orgsync.domain.ports.store import EntityStore, Filter

    from .identity import PersistedId

log = logging.getLogger(__name__)


@dataclass(slots=True)
class CascadeDeletionPlanner:
    store: EntityStore

    def delete_unit(self, unit_id: PersistedId) -> CascadeReport:
        """Delete one unit after its forms and collaborators."""

        report = CascadeReport()
        identifier = str(unit_id)
        self._step(report, Collection.FORM, {"unit_id": unit_id}, identifier)
        self._step(report, Collection.COLLABORATOR, {"unit_id": unit_id}, identifier)
        removed = self._step(report, Collection.UNIT, {"id": unit_id}, identifier)
        report.deleted = bool(removed)
        if removed == 0:
            log.info("Unit %s was already gone", unit_id)
        return report

    def delete_company(
        self,
        company_id: PersistedId,
        *,
        owner_id: str | None = None,
    ) -> CascadeReport:
        """Delete a company and everything reachable through its ``org_key``."""

        report = CascadeReport()
        identifier = str(company_id)
        company_filter: dict[str, object] = {"id": company_id}
        if owner_id is not None:
            company_filter["owner_id"] = owner_id

        try:
            company = self.store.find_one(Collection.COMPANY, company_filter)
        except StoreError as exc:
            log.warning("Could not load company %s for deletion: %s", company_id, exc)
            report.failures.append(
                Failure(entity_kind=Collection.COMPANY, identifier=identifier, reason=str(exc))
            )
            return report
        if company is None:
            self._verification_failed(report, identifier)
            return report

        org_key = company["org_key"]
        try:
            units = self.store.find_many(Collection.UNIT, {"org_key": org_key})
            unit_ids = [row["id"] for row in units]
        except StoreError as exc:
            log.warning("Could not list units of company %s: %s", company_id, exc)
            report.failures.append(
                Failure(entity_kind=Collection.UNIT, identifier=identifier, reason=str(exc))
            )
            unit_ids = []

        if unit_ids:
            self._step(report, Collection.FORM, {"unit_id": unit_ids}, identifier)
            self._step(report, Collection.COLLABORATOR, {"unit_id": unit_ids}, identifier)
            self._step(report, Collection.UNIT, {"id": unit_ids}, identifier)

        removed = self._step(report, Collection.COMPANY, company_filter, identifier)
        if removed == 0:
            self._verification_failed(report, identifier)
        report.deleted = bool(removed)
        log.info(
            "Company %s delete finished: deleted=%s, units=%s, failed_steps=%s",
            company_id,
            report.deleted,
            len(unit_ids),
            sum(1 for step in report.steps if not step.ok),
        )
        return report

    def _step(
        self,
        report: CascadeReport,
        collection: Collection,
        filters: Filter,
        identifier: str,
    ) -> int | None:
        try:
            removed = self.store.delete(collection, filters)
        except StoreError as exc:
            log.warning("Deleting %s rows for %s failed: %s", collection, identifier, exc)
            report.steps.append(CascadeStep(collection, 0, str(exc)))
            report.failures.append(
                Failure(entity_kind=collection, identifier=identifier, reason=str(exc))
            )
            return None
        log.debug("Deleted %s %s rows for %s", removed, collection, identifier)
        report.steps.append(CascadeStep(collection, removed))
        return removed

    @staticmethod
    def _verification_failed(report: CascadeReport, identifier: str) -> None:
        error = CascadeVerificationError(f"company {identifier} not found or not authorized")
        log.warning("%s", error)
        report.failures.append(
            Failure(
                entity_kind=Collection.COMPANY,
                identifier=identifier,
                reason=str(error),
                kind=FailureKind.CASCADE_VERIFICATION,
            )
        )
