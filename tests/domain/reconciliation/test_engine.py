from __future__ import annotations

import dataclasses
import uuid
from typing import TYPE_CHECKING

import pytest

from orgsync.domain.model import (
    CollaboratorDraft,
    Collection,
    CompanyDraft,
    RoleDraft,
    SectorDraft,
    TransactionMode,
    UnitDraft,
)
from orgsync.domain.reconciliation import (
    FailureKind,
    FatalStoreError,
    ReconciliationEngine,
    ReconciliationResult,
)

if TYPE_CHECKING:
    from tests.helpers.store import FakeUnitOfWorkFactory, InMemoryEntityStore

UNIT_REF = 1_700_000_000_001
COLLABORATOR_REF = 1_700_000_000_101


def _company(**overrides: object) -> CompanyDraft:
    draft = CompanyDraft(
        owner_id="owner-1",
        fields={"legal_name": "Acme Ltda", "unit_count": 50, "id": 99},
        sectors=(SectorDraft(name="Ops"), SectorDraft(name="Sales")),
        roles=(RoleDraft(name="Clerk", sector="Ops"),),
    )
    return dataclasses.replace(draft, **overrides)  # type: ignore[arg-type]


def _units(ref: object = UNIT_REF, sector: str = "Ops") -> tuple[UnitDraft, ...]:
    return (
        UnitDraft(
            ref=ref,
            name="North",
            sectors=(sector,),
            roles=(RoleDraft(name="Clerk", sector=sector),),
        ),
    )


def _collaborators(
    ref: object = COLLABORATOR_REF,
    unit_ref: object = UNIT_REF,
    sector: str = "Ops",
    role: str = "Clerk",
) -> tuple[CollaboratorDraft, ...]:
    return (CollaboratorDraft(ref=ref, unit_ref=unit_ref, name="Ana", sector=sector, role=role),)


def _engine(
    factory: FakeUnitOfWorkFactory,
    mode: TransactionMode = TransactionMode.BEST_EFFORT,
) -> ReconciliationEngine:
    return ReconciliationEngine(
        unit_of_work_factory=factory,
        transaction_mode=mode,
        default_unit_name="Matriz",
        collaborator_defaults={"category_code": 101, "category_label": "Empregado - Geral"},
    )


def _save_tree(factory: FakeUnitOfWorkFactory) -> ReconciliationResult:
    return _engine(factory).reconcile(_company(), _units(), _collaborators())


def test_new_company_tree_is_persisted(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    result = _save_tree(fake_unit_of_work)

    assert result.committed
    assert result.failures == []
    [company] = memory_store.rows(Collection.COMPANY)
    assert company["id"] == result.company_id
    assert company["org_key"] == result.org_key
    uuid.UUID(result.org_key)
    assert company["status"] == "active"
    assert company["owner_id"] == "owner-1"
    assert company["legal_name"] == "Acme Ltda"
    assert company["unit_count"] == 1
    assert company["collaborator_count"] == 1
    assert company["sector_ids"] == list(result.references.sector_ids.values())
    assert company["role_ids"] == list(result.references.role_ids.values())

    [unit] = memory_store.rows(Collection.UNIT)
    assert result.unit_ids == {str(UNIT_REF): unit["id"]}
    assert unit["org_key"] == result.org_key
    [collaborator] = memory_store.rows(Collection.COLLABORATOR)
    assert result.collaborator_ids == {str(COLLABORATOR_REF): collaborator["id"]}
    assert collaborator["unit_id"] == unit["id"]
    assert collaborator["role_id"] == result.references.role_ids["Ops/Clerk"]


def test_saving_the_same_tree_again_creates_nothing(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    first = _save_tree(fake_unit_of_work)
    unit_id = first.unit_ids[str(UNIT_REF)]
    inserts = len(memory_store.calls_for("insert"))

    second = _engine(fake_unit_of_work).reconcile(
        _company(ref=first.company_id),
        _units(ref=unit_id),
        _collaborators(ref=first.collaborator_ids[str(COLLABORATOR_REF)], unit_ref=unit_id),
    )

    assert len(memory_store.calls_for("insert")) == inserts
    assert memory_store.calls_for("delete") == []
    assert second.references.sector_ids == first.references.sector_ids
    assert second.references.role_ids == first.references.role_ids
    assert second.org_key == first.org_key
    assert second.failures == []


def test_removed_unit_cascades_to_its_collaborators(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    first = _save_tree(fake_unit_of_work)

    second = _engine(fake_unit_of_work).reconcile(
        _company(ref=first.company_id),
        (UnitDraft(ref="new-unit", name="South"),),
        (),
    )

    assert second.deleted_units == [first.unit_ids[str(UNIT_REF)]]
    assert [row["name"] for row in memory_store.rows(Collection.UNIT)] == ["South"]
    assert memory_store.rows(Collection.COLLABORATOR) == []
    [company] = memory_store.rows(Collection.COMPANY)
    assert (company["unit_count"], company["collaborator_count"]) == (1, 0)


def test_renamed_sector_keeps_its_id_everywhere(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    first = _save_tree(fake_unit_of_work)
    ops_id = first.references.sector_ids["Ops"]
    clerk_id = first.references.role_ids["Ops/Clerk"]
    unit_id = first.unit_ids[str(UNIT_REF)]

    second = _engine(fake_unit_of_work).reconcile(
        _company(
            ref=first.company_id,
            sectors=(SectorDraft(name="Operations", ref=ops_id),),
            roles=(RoleDraft(name="Clerk", sector="Operations", ref=clerk_id),),
        ),
        _units(ref=unit_id, sector="Operations"),
        _collaborators(
            ref=first.collaborator_ids[str(COLLABORATOR_REF)],
            unit_ref=unit_id,
            sector="Operations",
        ),
    )

    assert second.failures == []
    assert second.references.sector_ids == {"Operations": ops_id}
    assert {row["name"] for row in memory_store.rows(Collection.SECTOR)} == {"Operations", "Sales"}
    [unit] = memory_store.rows(Collection.UNIT)
    assert unit["sector_ids"] == [ops_id]
    assert unit["role_ids"] == [clerk_id]
    [collaborator] = memory_store.rows(Collection.COLLABORATOR)
    assert (collaborator["sector_id"], collaborator["role_id"]) == (ops_id, clerk_id)


def test_new_company_without_units_gets_default_unit(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    result = _engine(fake_unit_of_work).reconcile(_company(), (), ())

    [unit] = memory_store.rows(Collection.UNIT)
    assert unit["name"] == "Matriz"
    assert result.unit_ids == {}
    assert result.unkeyed_unit_ids == [unit["id"]]


def test_units_without_ids_never_anchor_collaborators(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    result = _engine(fake_unit_of_work).reconcile(
        _company(),
        (UnitDraft(ref=None, name="North"), UnitDraft(ref=None, name="South")),
        (CollaboratorDraft(ref=None, unit_ref=None, name="Ana"),),
    )

    units = memory_store.rows(Collection.UNIT)
    assert [row["name"] for row in units] == ["North", "South"]
    assert result.unit_ids == {}
    assert result.unkeyed_unit_ids == [row["id"] for row in units]
    assert memory_store.rows(Collection.COLLABORATOR) == []
    [failure] = result.failures
    assert (failure.entity_kind, failure.identifier) == (Collection.COLLABORATOR, "Ana")
    assert failure.reason == "collaborator has no unit"
    [company] = memory_store.rows(Collection.COMPANY)
    assert (company["unit_count"], company["collaborator_count"]) == (2, 0)
    assert (result.unit_count, result.collaborator_count) == (2, 0)


def test_collaborators_without_ids_are_all_reported(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    result = _engine(fake_unit_of_work).reconcile(
        _company(),
        _units(),
        (
            CollaboratorDraft(ref=None, unit_ref=UNIT_REF, name="Ana"),
            CollaboratorDraft(ref=None, unit_ref=UNIT_REF, name="Bruno"),
        ),
    )

    rows = memory_store.rows(Collection.COLLABORATOR)
    assert result.collaborator_ids == {}
    assert result.unkeyed_collaborator_ids == [row["id"] for row in rows]
    assert result.collaborator_count == 2


def test_existing_company_without_units_gets_no_default_unit(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    first = _save_tree(fake_unit_of_work)

    _engine(fake_unit_of_work).reconcile(_company(ref=first.company_id), (), ())

    assert memory_store.rows(Collection.UNIT) == []


def test_company_insert_failure_is_fatal(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    memory_store.fail_on("insert", Collection.COMPANY)

    with pytest.raises(FatalStoreError):
        _save_tree(fake_unit_of_work)

    assert memory_store.rows(Collection.COMPANY) == []
    assert memory_store.calls_for("insert", Collection.SECTOR) == []


def test_company_of_another_owner_is_fatal(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    first = _save_tree(fake_unit_of_work)

    with pytest.raises(FatalStoreError, match="not found or not authorized"):
        _engine(fake_unit_of_work).reconcile(
            _company(ref=first.company_id, owner_id="intruder"), (), ()
        )

    assert len(memory_store.rows(Collection.UNIT)) == 1


def test_best_effort_keeps_completed_stages(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    memory_store.fail_on("insert", Collection.COLLABORATOR)

    result = _save_tree(fake_unit_of_work)

    assert result.committed
    assert [failure.entity_kind for failure in result.blocking_failures] == [
        Collection.COLLABORATOR
    ]
    assert len(memory_store.rows(Collection.COMPANY)) == 1
    assert len(memory_store.rows(Collection.UNIT)) == 1
    assert memory_store.rows(Collection.COLLABORATOR) == []
    assert fake_unit_of_work.created[0].commits > 1


def test_atomic_rolls_back_everything_on_blocking_failure(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    memory_store.fail_on("insert", Collection.COLLABORATOR)

    result = _engine(fake_unit_of_work, TransactionMode.ATOMIC).reconcile(
        _company(), _units(), _collaborators()
    )

    assert not result.committed
    for collection in Collection:
        assert memory_store.rows(collection) == []
    assert fake_unit_of_work.created[0].commits == 0
    assert fake_unit_of_work.created[0].rollbacks == 1


def test_atomic_commits_once_when_only_references_are_unresolved(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    result = _engine(fake_unit_of_work, TransactionMode.ATOMIC).reconcile(
        _company(), _units(), _collaborators(role="Chef")
    )

    assert result.committed
    assert [failure.kind for failure in result.failures] == [FailureKind.UNRESOLVED_REFERENCE]
    assert result.blocking_failures == []
    assert fake_unit_of_work.created[0].commits == 1
    [collaborator] = memory_store.rows(Collection.COLLABORATOR)
    assert collaborator["role_id"] is None


def test_failed_role_insert_leaves_unrelated_entities_intact(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    memory_store.fail_on("insert", Collection.ROLE, match=lambda fields: fields["name"] == "Clerk")
    company = _company(
        roles=(RoleDraft(name="Clerk", sector="Ops"), RoleDraft(name="Seller", sector="Sales"))
    )
    units = (
        UnitDraft(
            ref=UNIT_REF,
            name="North",
            sectors=("Sales",),
            roles=(RoleDraft(name="Seller", sector="Sales"),),
        ),
    )
    collaborators = (
        CollaboratorDraft(
            ref=COLLABORATOR_REF, unit_ref=UNIT_REF, name="Ana", sector="Sales", role="Seller"
        ),
    )

    result = _engine(fake_unit_of_work).reconcile(company, units, collaborators)

    assert result.committed
    assert [(failure.entity_kind, failure.identifier) for failure in result.failures] == [
        (Collection.ROLE, "Ops/Clerk")
    ]
    seller_id = result.references.role_ids["Sales/Seller"]
    assert [row["name"] for row in memory_store.rows(Collection.ROLE)] == ["Seller"]
    [unit] = memory_store.rows(Collection.UNIT)
    assert unit["role_ids"] == [seller_id]
    [collaborator] = memory_store.rows(Collection.COLLABORATOR)
    assert collaborator["role_id"] == seller_id
    assert result.collaborator_ids == {str(COLLABORATOR_REF): collaborator["id"]}


def test_counts_include_units_whose_update_failed(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    first = _save_tree(fake_unit_of_work)
    unit_id = first.unit_ids[str(UNIT_REF)]
    memory_store.fail_on("update", Collection.UNIT)

    second = _engine(fake_unit_of_work).reconcile(
        _company(ref=first.company_id),
        _units(ref=unit_id),
        _collaborators(ref=first.collaborator_ids[str(COLLABORATOR_REF)], unit_ref=unit_id),
    )

    assert [failure.entity_kind for failure in second.blocking_failures] == [Collection.UNIT]
    assert second.unit_ids == {}
    [company] = memory_store.rows(Collection.COMPANY)
    assert (company["unit_count"], company["collaborator_count"]) == (1, 1)


def test_summary_failure_is_reported_not_raised(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    memory_store.fail_on("update", Collection.COMPANY)

    result = _save_tree(fake_unit_of_work)

    assert result.committed
    assert [(failure.entity_kind, failure.kind) for failure in result.failures] == [
        (Collection.COMPANY, FailureKind.PARTIAL_ENTITY)
    ]
    assert len(memory_store.rows(Collection.COLLABORATOR)) == 1


def test_cascade_delete_removes_the_whole_tree(
    fake_unit_of_work: FakeUnitOfWorkFactory, memory_store: InMemoryEntityStore
) -> None:
    saved = _save_tree(fake_unit_of_work)
    unit_id = saved.unit_ids[str(UNIT_REF)]
    memory_store.seed(Collection.FORM, unit_id=unit_id, title="Climate survey")

    result = _engine(fake_unit_of_work).cascade_delete(saved.company_id, owner_id="owner-1")

    assert result.deleted
    assert result.committed
    assert [step.collection for step in result.steps] == [
        Collection.FORM,
        Collection.COLLABORATOR,
        Collection.UNIT,
        Collection.COMPANY,
    ]
    for collection in (Collection.COMPANY, Collection.UNIT, Collection.COLLABORATOR):
        assert memory_store.rows(collection) == []
    assert memory_store.rows(Collection.FORM) == []
    assert len(memory_store.rows(Collection.SECTOR)) == 2


@pytest.mark.parametrize("mode", list(TransactionMode))
def test_cascade_delete_of_foreign_company_deletes_nothing(
    fake_unit_of_work: FakeUnitOfWorkFactory,
    memory_store: InMemoryEntityStore,
    mode: TransactionMode,
) -> None:
    saved = _save_tree(fake_unit_of_work)

    result = _engine(fake_unit_of_work, mode).cascade_delete(saved.company_id, owner_id="intruder")

    assert not result.deleted
    assert [failure.kind for failure in result.failures] == [FailureKind.CASCADE_VERIFICATION]
    assert result.committed is (mode is TransactionMode.BEST_EFFORT)
    assert len(memory_store.rows(Collection.COMPANY)) == 1
    assert result.to_dict()["failures"][0]["kind"] == "cascade_verification"  # type: ignore[index]
