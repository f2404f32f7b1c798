"""Application configuration helpers."""

from __future__ import annotations

from .env import enum_env_var, optional_env_var
from .errors import ConfigurationError
from .logging import configure_logging, get_log_level
from .reconcile import ReconcileConfig, get_reconcile_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "ReconcileConfig",
    "StorageConfig",
    "configure_logging",
    "enum_env_var",
    "get_database_config",
    "get_database_uri",
    "get_log_level",
    "get_reconcile_config",
    "get_storage_config",
    "optional_env_var",
]
