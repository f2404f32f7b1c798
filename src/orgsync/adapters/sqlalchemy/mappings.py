"""SQLAlchemy table metadata for the organization collections."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    TypeDecorator,
    create_engine,
    event,
)

from orgsync.domain.model import Collection

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.pool import ConnectionPoolEntry

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _utcnow() -> datetime:
    return datetime.now(UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

company_table = Table(
    "company",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("org_key", String(36), nullable=False, unique=True),
    Column("owner_id", String, nullable=True, index=True),
    Column("legal_name", String, nullable=True),
    Column("trade_name", String, nullable=True),
    Column("tax_id", String, nullable=True),
    Column("email", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("contact_name", String, nullable=True),
    Column("address", JSON, nullable=True),
    Column("status", String, nullable=False, default="active"),
    Column("sector_ids", JSON, nullable=False, default=list),
    Column("role_ids", JSON, nullable=False, default=list),
    Column("unit_count", Integer, nullable=False, default=0),
    Column("collaborator_count", Integer, nullable=False, default=0),
    Column("created_at", UTCDateTime(), nullable=False, default=_utcnow),
)

sector_table = Table(
    "sector",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False, index=True),
)

role_table = Table(
    "role",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False, index=True),
    Column("sector_id", Integer, ForeignKey("sector.id"), nullable=False),
)

unit_table = Table(
    "unit",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("org_key", String(36), ForeignKey("company.org_key"), nullable=False, index=True),
    Column("name", String, nullable=False),
    Column("sector_ids", JSON, nullable=False, default=list),
    Column("role_ids", JSON, nullable=False, default=list),
)

collaborator_table = Table(
    "collaborator",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("unit_id", Integer, ForeignKey("unit.id"), nullable=False, index=True),
    Column("sector_id", Integer, ForeignKey("sector.id"), nullable=True),
    Column("role_id", Integer, ForeignKey("role.id"), nullable=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=True),
    Column("document", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("birth_date", String, nullable=True),
    Column("gender", String, nullable=True),
    Column("termination_date", String, nullable=True),
    Column("category_code", Integer, nullable=True),
    Column("category_label", String, nullable=True),
)

form_table = Table(
    "form",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("unit_id", Integer, ForeignKey("unit.id"), nullable=False, index=True),
    Column("title", String, nullable=False),
    Column("description", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False, default=_utcnow),
)

TABLE_BY_COLLECTION: dict[Collection, Table] = {
    Collection.COMPANY: company_table,
    Collection.SECTOR: sector_table,
    Collection.ROLE: role_table,
    Collection.UNIT: unit_table,
    Collection.COLLABORATOR: collaborator_table,
    Collection.FORM: form_table,
}


def create_all_tables(engine: Engine) -> None:
    """Create all known tables if they do not already exist."""

    metadata.create_all(engine)


def build_engine(database_uri: str) -> Engine:
    """Create an engine; SQLite engines get foreign keys and working savepoints."""

    engine = create_engine(database_uri, future=True)
    if engine.dialect.name == "sqlite":
        configure_sqlite(engine)
    return engine


def configure_sqlite(engine: Engine) -> None:
    """Enforce foreign keys and let SQLAlchemy own BEGIN so SAVEPOINTs nest correctly.

    Must run before the engine opens its first connection.
    """

    if event.contains(engine, "connect", _on_sqlite_connect):
        return
    event.listen(engine, "connect", _on_sqlite_connect)
    event.listen(engine, "begin", _on_sqlite_begin)


def _on_sqlite_connect(dbapi_connection: object, connection_record: ConnectionPoolEntry) -> None:
    _ = connection_record
    # pysqlite would otherwise emit its own BEGIN and break nested transactions
    dbapi_connection.isolation_level = None  # type: ignore[attr-defined]
    cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(connection: object) -> None:
    connection.exec_driver_sql("BEGIN")  # type: ignore[attr-defined]
