"""Reconciliation defaults and their environment overrides."""

from __future__ import annotations

from dataclasses import dataclass

from orgsync.domain.model import TransactionMode

from .env import enum_env_var, optional_env_var

DEFAULT_UNIT_NAME = "Matriz"
DEFAULT_COLLABORATOR_CATEGORY_CODE = 101
DEFAULT_COLLABORATOR_CATEGORY_LABEL = "Empregado - Geral"


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    transaction_mode: TransactionMode = TransactionMode.BEST_EFFORT
    # ``None`` disables the unit created for companies saved without any unit
    default_unit_name: str | None = DEFAULT_UNIT_NAME
    collaborator_category_code: int = DEFAULT_COLLABORATOR_CATEGORY_CODE
    collaborator_category_label: str = DEFAULT_COLLABORATOR_CATEGORY_LABEL

    def collaborator_defaults(self) -> dict[str, object]:
        return {
            "category_code": self.collaborator_category_code,
            "category_label": self.collaborator_category_label,
        }


def get_reconcile_config() -> ReconcileConfig:
    mode = enum_env_var(
        "ORGSYNC_TRANSACTION_MODE", TransactionMode, TransactionMode.BEST_EFFORT
    )

    unit_name = optional_env_var("ORGSYNC_DEFAULT_UNIT_NAME")
    if unit_name is None:
        default_unit_name: str | None = DEFAULT_UNIT_NAME
    else:
        default_unit_name = unit_name or None

    return ReconcileConfig(transaction_mode=mode, default_unit_name=default_unit_name)
