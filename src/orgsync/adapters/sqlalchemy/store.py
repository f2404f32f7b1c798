"""Entity store implementation backed by SQLAlchemy Core tables."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from orgsync.adapters.sqlalchemy.mappings import TABLE_BY_COLLECTION
from orgsync.domain.ports.store import StoreError, is_in_filter

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from sqlalchemy import ColumnElement, Table
    from sqlalchemy.engine import CursorResult
    from sqlalchemy.orm import Session

    from orgsync.domain.model import Collection
    from orgsync.domain.ports.store import Filter, Row, RowId

log = logging.getLogger(__name__)


class SqlAlchemyEntityStore:
    """Run each store call inside its own SAVEPOINT of the session transaction.

    A failing statement only rolls back its savepoint, so the surrounding unit
    of work can keep going and decide later whether to commit.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_one(self, collection: Collection, filters: Filter) -> Row | None:
        table = _table(collection)
        stmt = select(table).where(*_criteria(table, collection, filters)).limit(1)

        def run() -> Row | None:
            row = self.session.execute(stmt).mappings().first()
            return dict(row) if row is not None else None

        return self._guarded(collection, run)

    def find_many(self, collection: Collection, filters: Filter) -> list[Row]:
        table = _table(collection)
        stmt = select(table).where(*_criteria(table, collection, filters)).order_by(table.c.id)

        def run() -> list[Row]:
            return [dict(row) for row in self.session.execute(stmt).mappings().all()]

        return self._guarded(collection, run)

    def insert(self, collection: Collection, fields: Mapping[str, object]) -> Row:
        table = _table(collection)
        values = _values(table, collection, fields)

        def run() -> Row:
            result = cast("CursorResult[Any]", self.session.execute(insert(table).values(values)))
            new_id = result.inserted_primary_key[0]
            row = self.session.execute(select(table).where(table.c.id == new_id)).mappings().one()
            return dict(row)

        row = self._guarded(collection, run)
        log.debug("Inserted %s %s", collection, row["id"])
        return row

    def update(self, collection: Collection, row_id: RowId, fields: Mapping[str, object]) -> int:
        table = _table(collection)
        values = _values(table, collection, fields)

        def run() -> int:
            if not values:
                found = self.session.execute(select(table.c.id).where(table.c.id == row_id))
                return 1 if found.first() is not None else 0
            stmt = update(table).where(table.c.id == row_id).values(values)
            return cast("CursorResult[Any]", self.session.execute(stmt)).rowcount

        return self._guarded(collection, run)

    def delete(self, collection: Collection, filters: Filter) -> int:
        if not filters:
            raise StoreError(collection, "refusing to delete without filters")
        table = _table(collection)
        stmt = delete(table).where(*_criteria(table, collection, filters))

        def run() -> int:
            return cast("CursorResult[Any]", self.session.execute(stmt)).rowcount

        removed = self._guarded(collection, run)
        log.debug("Deleted %s %s row(s) matching %s", removed, collection, dict(filters))
        return removed

    def _guarded[T](self, collection: Collection, run: Callable[[], T]) -> T:
        try:
            with self.session.begin_nested():
                return run()
        except SQLAlchemyError as exc:
            raise StoreError(collection, str(getattr(exc, "orig", None) or exc)) from exc


def _table(collection: Collection) -> Table:
    try:
        return TABLE_BY_COLLECTION[collection]
    except KeyError as exc:
        raise StoreError(collection, "unknown collection") from exc


def _criteria(table: Table, collection: Collection, filters: Filter) -> list[ColumnElement[bool]]:
    criteria: list[ColumnElement[bool]] = []
    for name, value in filters.items():
        column = table.c.get(name)
        if column is None:
            raise StoreError(collection, f"unknown column {name!r}")
        if is_in_filter(value):
            criteria.append(column.in_(list(cast("Any", value))))
        elif value is None:
            criteria.append(column.is_(None))
        else:
            criteria.append(column == value)
    return criteria


def _values(
    table: Table, collection: Collection, fields: Mapping[str, object]
) -> dict[str, object]:
    unknown = sorted(name for name in fields if name not in table.c)
    if unknown:
        raise StoreError(collection, f"unknown column(s) {', '.join(unknown)}")
    return {name: value for name, value in fields.items() if name != "id"}
