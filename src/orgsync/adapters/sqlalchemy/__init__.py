"""SQLAlchemy adapter package for orgsync."""

from __future__ import annotations

from .mappings import (
    TABLE_BY_COLLECTION,
    build_engine,
    configure_sqlite,
    create_all_tables,
    metadata,
)
from .store import SqlAlchemyEntityStore
from .unit_of_work import (
    SqlAlchemyReconciliationUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "TABLE_BY_COLLECTION",
    "SqlAlchemyEntityStore",
    "SqlAlchemyReconciliationUnitOfWork",
    "StartupError",
    "build_engine",
    "configure_sqlite",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
