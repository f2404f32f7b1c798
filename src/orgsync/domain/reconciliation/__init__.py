"""Reconciliation of a client-edited organization tree with persisted rows.

Layered flow for a company save:
1) classify every client identifier as persisted or pending
2) resolve shared sectors and roles by natural key
3) synchronize units, cascading deletes through forms and collaborators
4) synchronize collaborators against the resolved unit ids

Company deletes go straight to the cascade planner.
"""

from __future__ import annotations

from .cascade import CascadeDeletionPlanner
from .collaborators import synchronize_collaborators
from .contracts import (
    CascadeReport,
    CascadeStep,
    DeletionResult,
    Failure,
    FailureKind,
    ReconciliationResult,
    ReferenceMaps,
    role_key,
)
from .engine import ReconciliationEngine
from .errors import CascadeVerificationError, FatalStoreError, ReconciliationError
from .identity import (
    PLACEHOLDER_ID_THRESHOLD,
    Pending,
    Persisted,
    classify_identifier,
    client_key,
    is_persisted,
)
from .references import resolve_references
from .units import synchronize_units

__all__ = [
    "PLACEHOLDER_ID_THRESHOLD",
    "CascadeDeletionPlanner",
    "CascadeReport",
    "CascadeStep",
    "CascadeVerificationError",
    "DeletionResult",
    "Failure",
    "FailureKind",
    "FatalStoreError",
    "Pending",
    "Persisted",
    "ReconciliationEngine",
    "ReconciliationError",
    "ReconciliationResult",
    "ReferenceMaps",
    "classify_identifier",
    "client_key",
    "is_persisted",
    "resolve_references",
    "role_key",
    "synchronize_collaborators",
    "synchronize_units",
]
