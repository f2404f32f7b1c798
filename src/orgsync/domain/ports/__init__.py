"""Domain port definitions for adapters."""

from __future__ import annotations

from .store import EntityStore, Filter, Row, RowId, StoreError
from .unit_of_work import (
    ReconciliationRepositories,
    ReconciliationUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "EntityStore",
    "Filter",
    "ReconciliationRepositories",
    "ReconciliationUnitOfWork",
    "RepositoryCollection",
    "Row",
    "RowId",
    "StoreError",
    "UnitOfWork",
]
