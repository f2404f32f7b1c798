"""Result and failure types shared by the reconciliation stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from orgsync.domain.model import Collection

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .identity import PersistedId


class FailureKind(StrEnum):
    """Why an entity was skipped or only partially written."""

    PARTIAL_ENTITY = "partial_entity"
    UNRESOLVED_REFERENCE = "unresolved_reference"
    CASCADE_VERIFICATION = "cascade_verification"


@dataclass(frozen=True, slots=True, kw_only=True)
class Failure:
    """One entity-level problem recorded during a run."""

    entity_kind: Collection
    identifier: str
    reason: str
    kind: FailureKind = FailureKind.PARTIAL_ENTITY

    @property
    def is_blocking(self) -> bool:
        """Unresolved references drop a field; every other kind means a write did not happen."""
        return self.kind is not FailureKind.UNRESOLVED_REFERENCE

    def to_dict(self) -> dict[str, str]:
        return {
            "entity_kind": self.entity_kind.value,
            "identifier": self.identifier,
            "reason": self.reason,
            "kind": self.kind.value,
        }


def role_key(sector: str, role: str) -> str:
    return f"{sector}/{role}"


def row_id(row: Mapping[str, object]) -> PersistedId:
    value = row["id"]
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise TypeError(f"Unexpected row id type: {type(value).__name__}")
    return value


@dataclass(slots=True)
class ReferenceMaps:
    """Natural key to id maps produced by the reference resolver."""

    sector_ids: dict[str, PersistedId] = field(default_factory=dict["str", "PersistedId"])
    role_ids: dict[str, PersistedId] = field(default_factory=dict["str", "PersistedId"])
    created: dict[Collection, list[PersistedId]] = field(
        default_factory=lambda: {Collection.SECTOR: [], Collection.ROLE: []}
    )

    def sector_id(self, name: str | None) -> PersistedId | None:
        if not name:
            return None
        return self.sector_ids.get(name)

    def role_id(self, sector: str | None, role: str | None) -> PersistedId | None:
        if not sector or not role:
            return None
        return self.role_ids.get(role_key(sector, role))

    def to_dict(self) -> dict[str, object]:
        return {
            "sector_ids": dict(self.sector_ids),
            "role_ids": dict(self.role_ids),
            "created": {str(kind): list(ids) for kind, ids in self.created.items()},
        }


@dataclass(slots=True)
class ReferenceResolution:
    maps: ReferenceMaps
    failures: list[Failure] = field(default_factory=list["Failure"])


@dataclass(slots=True)
class UnitSyncResult:
    """Client key to persisted id for every unit written in this run.

    Units saved without a client id land in ``unkeyed_ids``; nothing can refer
    to them, so they never anchor collaborators.
    """

    unit_ids: dict[str, PersistedId] = field(default_factory=dict["str", "PersistedId"])
    unkeyed_ids: list[PersistedId] = field(default_factory=list["PersistedId"])
    deleted: list[PersistedId] = field(default_factory=list["PersistedId"])
    failures: list[Failure] = field(default_factory=list["Failure"])


@dataclass(slots=True)
class CollaboratorSyncResult:
    collaborator_ids: dict[str, PersistedId] = field(default_factory=dict["str", "PersistedId"])
    unkeyed_ids: list[PersistedId] = field(default_factory=list["PersistedId"])
    deleted: list[PersistedId] = field(default_factory=list["PersistedId"])
    failures: list[Failure] = field(default_factory=list["Failure"])


@dataclass(frozen=True, slots=True)
class CascadeStep:
    """Outcome of one delete statement issued by the cascade planner."""

    collection: Collection
    deleted: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, object]:
        return {"collection": self.collection.value, "deleted": self.deleted, "error": self.error}


@dataclass(slots=True)
class CascadeReport:
    steps: list[CascadeStep] = field(default_factory=list["CascadeStep"])
    failures: list[Failure] = field(default_factory=list["Failure"])
    deleted: bool = False

    @property
    def ok(self) -> bool:
        return all(step.ok for step in self.steps)


@dataclass(slots=True)
class ReconciliationResult:
    """Report returned for a company save."""

    company_id: PersistedId
    org_key: str
    unit_ids: dict[str, PersistedId] = field(default_factory=dict["str", "PersistedId"])
    unkeyed_unit_ids: list[PersistedId] = field(default_factory=list["PersistedId"])
    collaborator_ids: dict[str, PersistedId] = field(default_factory=dict["str", "PersistedId"])
    unkeyed_collaborator_ids: list[PersistedId] = field(default_factory=list["PersistedId"])
    references: ReferenceMaps = field(default_factory=ReferenceMaps)
    deleted_units: list[PersistedId] = field(default_factory=list["PersistedId"])
    deleted_collaborators: list[PersistedId] = field(default_factory=list["PersistedId"])
    unit_count: int = 0
    collaborator_count: int = 0
    failures: list[Failure] = field(default_factory=list["Failure"])
    committed: bool = False

    @property
    def blocking_failures(self) -> list[Failure]:
        return [failure for failure in self.failures if failure.is_blocking]

    def to_dict(self) -> dict[str, object]:
        return {
            "company_id": self.company_id,
            "org_key": self.org_key,
            "unit_ids": dict(self.unit_ids),
            "unkeyed_unit_ids": list(self.unkeyed_unit_ids),
            "collaborator_ids": dict(self.collaborator_ids),
            "unkeyed_collaborator_ids": list(self.unkeyed_collaborator_ids),
            "references": self.references.to_dict(),
            "deleted_units": list(self.deleted_units),
            "deleted_collaborators": list(self.deleted_collaborators),
            "unit_count": self.unit_count,
            "collaborator_count": self.collaborator_count,
            "failures": [failure.to_dict() for failure in self.failures],
            "committed": self.committed,
        }


@dataclass(slots=True)
class DeletionResult:
    """Report returned for a company cascade delete."""

    company_id: PersistedId
    deleted: bool
    steps: list[CascadeStep] = field(default_factory=list["CascadeStep"])
    failures: list[Failure] = field(default_factory=list["Failure"])
    committed: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "company_id": self.company_id,
            "deleted": self.deleted,
            "steps": [step.to_dict() for step in self.steps],
            "failures": [failure.to_dict() for failure in self.failures],
            "committed": self.committed,
        }
