"""Classify client identifiers as persisted rows or pending placeholders.

Clients mint placeholder ids for unsaved rows from a millisecond wall-clock
timestamp. Real ids are either small sequence integers or UUIDs, so anything
UUID-shaped or numerically below ``PLACEHOLDER_ID_THRESHOLD`` denotes an
existing row. A sequence that grows past the threshold would be misread as a
placeholder; callers that can should pass explicit ``Persisted``/``Pending``
tags instead of raw values.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Final

PLACEHOLDER_ID_THRESHOLD: Final[int] = 10**12

_UUID_PATTERN: Final = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

type PersistedId = int | str


@dataclass(frozen=True, slots=True)
class Persisted:
    id: PersistedId


@dataclass(frozen=True, slots=True)
class Pending:
    client_key: str


type Identity = Persisted | Pending


def classify_identifier(value: object) -> Identity:
    """Return ``Persisted`` for real row ids and ``Pending`` for everything else."""

    if isinstance(value, (Persisted, Pending)):
        return value
    if isinstance(value, uuid.UUID):
        return Persisted(str(value))
    # bool is an int subclass; a flag is never an id
    if isinstance(value, bool) or value is None:
        return Pending(client_key(value))
    if isinstance(value, int):
        return _classify_number(value)
    if isinstance(value, str):
        text = value.strip()
        if _UUID_PATTERN.match(text):
            return Persisted(text)
        if text.isascii() and text.isdigit():
            return _classify_number(int(text))
        return Pending(text)
    return Pending(str(value))


def is_persisted(value: object) -> bool:
    return isinstance(classify_identifier(value), Persisted)


def client_key(value: object) -> str:
    """Stable string key for a client identifier, used to join units and collaborators."""

    if isinstance(value, Persisted):
        return str(value.id)
    if isinstance(value, Pending):
        return value.client_key
    if value is None or isinstance(value, bool):
        return ""
    return str(value).strip()


def _classify_number(value: int) -> Identity:
    if 0 < value < PLACEHOLDER_ID_THRESHOLD:
        return Persisted(value)
    return Pending(str(value))
