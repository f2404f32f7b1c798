"""Readers for ``ORGSYNC_*`` environment settings."""

from __future__ import annotations

import os
from enum import StrEnum

from .errors import ConfigurationError


def optional_env_var(name: str) -> str | None:
    """Return a stripped environment variable, or ``None`` when unset."""

    value = os.getenv(name)
    if value is None:
        return None
    return value.strip()


def enum_env_var[E: StrEnum](name: str, enum_type: type[E], default: E) -> E:
    """Read ``name`` as a member of ``enum_type``; unset or blank gives ``default``."""

    value = optional_env_var(name)
    if not value:
        return default
    try:
        return enum_type(value.lower())
    except ValueError as exc:
        choices = ", ".join(item.value for item in enum_type)
        raise ConfigurationError(
            f"Invalid {name} {value!r} (expected one of: {choices})"
        ) from exc
