"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Collection(StrEnum):
    """Named collections (tables) the entity store exposes."""

    COMPANY = "company"
    SECTOR = "sector"
    ROLE = "role"
    UNIT = "unit"
    COLLABORATOR = "collaborator"
    FORM = "form"


class TransactionMode(StrEnum):
    """How a reconciliation run maps onto store transactions."""

    ATOMIC = "atomic"
    BEST_EFFORT = "best_effort"
