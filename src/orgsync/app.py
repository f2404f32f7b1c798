"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from orgsync.adapters.payload import parse_organization, translate_organization
from orgsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyReconciliationUnitOfWork,
    is_started,
    startup,
)
from orgsync.config import get_reconcile_config
from orgsync.domain.ports.unit_of_work import ReconciliationUnitOfWork
from orgsync.domain.reconciliation import ReconciliationEngine

if TYPE_CHECKING:
    from orgsync.adapters.payload import OrganizationPayload
    from orgsync.config import ReconcileConfig
    from orgsync.domain.reconciliation import DeletionResult, ReconciliationResult
    from orgsync.domain.reconciliation.identity import PersistedId

UnitOfWorkFactory = Callable[[], ReconciliationUnitOfWork]


log = getLogger(__name__)


def initialize_database(*, database_uri: str | None = None) -> None:
    """Create the schema on the configured (or given) database."""

    startup(database_uri=database_uri, force=is_started())
    log.info("Database schema is ready")


def build_reconciliation_engine(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> ReconciliationEngine:
    """Wire the reconciliation engine to the configured adapters."""

    effective_config = config or get_reconcile_config()
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyReconciliationUnitOfWork
    return ReconciliationEngine(
        unit_of_work_factory=unit_of_work_factory,
        transaction_mode=effective_config.transaction_mode,
        default_unit_name=effective_config.default_unit_name,
        collaborator_defaults=effective_config.collaborator_defaults(),
    )


def reconcile_company(
    payload: OrganizationPayload | str | bytes | dict[str, object],
    *,
    owner_id: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> ReconciliationResult:
    """Save one client-edited organization tree."""

    if isinstance(payload, (str, bytes, dict)):
        payload = parse_organization(payload)
    drafts = translate_organization(payload, owner_id=owner_id)
    engine = build_reconciliation_engine(unit_of_work_factory=unit_of_work_factory, config=config)
    log.info(
        "Starting company save: company=%s, units=%s, collaborators=%s, mode=%s",
        drafts.company.ref,
        len(drafts.units),
        len(drafts.collaborators),
        engine.transaction_mode,
    )
    return engine.reconcile(drafts.company, drafts.units, drafts.collaborators)


def delete_company(
    company_id: PersistedId,
    *,
    owner_id: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> DeletionResult:
    """Delete a company and everything that belongs to it."""

    engine = build_reconciliation_engine(unit_of_work_factory=unit_of_work_factory, config=config)
    log.info("Starting company delete: company=%s, owner=%s", company_id, owner_id)
    result = engine.cascade_delete(company_id, owner_id=owner_id)
    log.info(
        "Finished company delete: company=%s, deleted=%s, failures=%s",
        company_id,
        result.deleted,
        len(result.failures),
    )
    return result
