"""Narrow entity-store port consumed by the reconciliation engine.

Every operation is scoped to one collection. Filters are plain mappings of
column name to value; a list, tuple, set or frozenset value means ``IN``,
anything else means equality. The engine performs its own multi-step
resolution, so adapters never need joins.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from orgsync.domain.model import Collection


type Row = dict[str, object]
type Filter = Mapping[str, object]
type RowId = int | str


class StoreError(RuntimeError):
    """Raised by store adapters when a statement fails."""

    def __init__(self, collection: Collection, message: str) -> None:
        super().__init__(f"{collection}: {message}")
        self.collection = collection


@runtime_checkable
class EntityStore(Protocol):
    """Insert/update/delete/find rows of a named collection."""

    def find_one(self, collection: Collection, filters: Filter) -> Row | None: ...

    def find_many(self, collection: Collection, filters: Filter) -> list[Row]: ...

    def insert(self, collection: Collection, fields: Mapping[str, object]) -> Row: ...

    def update(self, collection: Collection, row_id: RowId, fields: Mapping[str, object]) -> int:
        """Update one row by id and return the number of affected rows."""
        ...

    def delete(self, collection: Collection, filters: Filter) -> int:
        """Delete matching rows and return how many were removed."""
        ...


def is_in_filter(value: object) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))
